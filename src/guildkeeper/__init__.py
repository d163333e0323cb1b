"""
Guildkeeper - Discord guild state reconciliation bot

Guildkeeper polls each guild on a fixed tick and drives it towards its stored
records: scheduled events get announced and auto-started, expired bans and
mutes are lifted, reminders are delivered and member nicknames are kept
clean.
"""
