"""Model asset lookup and download."""
