"""Per-frame tracking records and pose math."""
