"""
Hourly timer core.

- **calendar_codec.py**: (month, day) <-> day-of-year on a fixed 366-day calendar.
- **birthday_index.py**: Forward and reverse birthday lookup.
- **timer_registry.py**: Hour buckets, named events, deferred removal.
- **scheduler.py**: The hour-aligned tick loop.
- **expiry_sweep.py**: Per-tick release of expired temporary bans.
- **timer_service.py**: Public API composing the pieces with persistence.
- **default_events.py**: Startup wiring and built-in daily events.
"""
