"""Session log and listener delivery."""
