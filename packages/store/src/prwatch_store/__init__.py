"""Poll-state persistence backends."""
