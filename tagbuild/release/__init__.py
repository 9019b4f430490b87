"""Tag classification, matrix fan-out and the per-platform build task."""
