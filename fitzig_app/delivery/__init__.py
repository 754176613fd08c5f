"""
Cue delivery module.

Fire-and-forget notifications on phase-enter events. Delivery is best
effort: a failing sink never interrupts the running session.
"""
