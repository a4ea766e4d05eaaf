"""Terminal renderers for the portal store."""
