"""Internal helpers (fs, ANSI colors, debug log)."""
