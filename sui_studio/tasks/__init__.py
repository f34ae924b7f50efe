"""Background and coordination helpers."""
