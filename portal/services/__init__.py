"""Durable store, actions and background tasks for the portal."""
