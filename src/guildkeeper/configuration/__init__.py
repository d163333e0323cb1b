"""
Configuration management for Guildkeeper.

Application settings are read from ``config/app_config.yml``; per-guild
settings live in the data store.
"""
