"""
Session template data module.

Immutable template and completed-run models plus template validation.
"""
