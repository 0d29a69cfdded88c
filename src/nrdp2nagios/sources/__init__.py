"""Input sources for check results."""
