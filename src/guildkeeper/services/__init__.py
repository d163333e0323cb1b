"""Discord-facing services: the REST gateway and the notification builder."""
