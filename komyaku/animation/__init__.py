"""Character attribute generation and per-track animation."""
