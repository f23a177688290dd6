"""Inference backends behind a common detect-on-frame contract."""
