"""Face detector adapters."""
