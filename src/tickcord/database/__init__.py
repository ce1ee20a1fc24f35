"""
Database package for Tickcord.

A single aiosqlite connection holds every persisted structure as a JSON blob
keyed by name; ``state_store.StateStore`` is the load/save API used by the
timer core.
"""
