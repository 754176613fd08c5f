"""
Session state machine and runtime module.

Reconciles the live session against wall-clock time and applies user
controls. Handles transitions between EXERCISE → COOLDOWN → next exercise
or set, with PAUSED and the countdown pre-roll alongside.
"""
