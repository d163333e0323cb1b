"""Typed records shared across the reconciliation passes."""
