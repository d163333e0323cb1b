"""
Periodic reconciliation of cached guild data against Discord.

This package contains:
- tick_scheduler: Fixed-period driver fanning out one task per guild
- scheduled_event_reconciler: Notifications and auto-start for scheduled events
- member_reconciler: Unban, unmute, reminders, default role, nickname filter
- error_aggregator: Collects per-entity failures into one exception group
"""
