"""Camera stream access."""
