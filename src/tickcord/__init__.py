"""
Tickcord - Hourly Scheduler Discord Bot

Tickcord runs a single wall-clock-aligned tick every hour and dispatches
whatever is registered for that hour of the day.

Core Components:

- **Hourly Scheduler**: One asyncio task aligned to the next hour boundary,
  advancing an hour-of-day and an hours-since-epoch counter per tick
- **Timer Registry**: Anonymous and named (persisted) daily events with
  deferred removal
- **Birthday Index**: Day-of-year lookup of birthdays on a fixed 366-day calendar
- **Temporary Bans**: Expiry records swept every tick and lifted on time

Usage:
    from tickcord.main import main
    main()
"""
