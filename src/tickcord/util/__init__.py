"""
Utility helpers for Tickcord.

- **logger.py**: Centralized logging with coloured prompt_toolkit console
  output, per-session log files and daily log rotation.
"""
