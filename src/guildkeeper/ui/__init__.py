"""
User interface components for Guildkeeper.

This package provides the Discord-facing presentation layer:
- event_embeds: Embeds for scheduled event notifications and reminders
- event_details_view: Persistent view carrying the event details button
"""
