"""
Utility functions module.

Common helpers shared across the system.

Time Semantics:
- All timestamps are aware UTC datetimes
- Engines take an injectable clock so cycles can be driven deterministically
- Recurring schedules are always recomputed from an explicit anchor, never
  caught up retroactively
"""
