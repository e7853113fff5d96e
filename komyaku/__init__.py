"""
Core package init for Komyaku Overlay.

Makes the `komyaku` modules importable without requiring an editable install.
"""

__all__ = [
    "animation",
    "detectors",
    "tracking",
    "viz",
    "io_utils",
    "pipeline",
    "types",
]
