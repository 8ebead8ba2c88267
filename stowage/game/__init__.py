"""Game-side storage systems."""
