"""
Utility functions module.

Time Semantics:
- All runtime timestamps are wall-clock epoch milliseconds (int)
- Elapsed phase time is always counted in whole seconds, floored
- Callers pass "now" explicitly; only the sampler reads the real clock
"""
