"""
Database package for Guildkeeper.

Provides the shared aiosqlite connection and the schema definition.
"""
