"""
Utility functions and helpers for Guildkeeper.

This package provides reusable utilities:
- logger: Console and rotating file logging
- format_utils: Discord markup for timestamps, mentions and durations
"""
