"""
Configuration management for Tickcord.

- **app_configuration.py**: YAML configuration loader for global settings
  (database path, scheduler period, birthday channel, daily announcements).
  Falls back gracefully on missing or malformed config files.
"""
