"""
Persistence module.

Snapshot codec, storage contracts for templates, the active-session snapshot
and completed runs, and the single-slot guard around the snapshot key.
"""
