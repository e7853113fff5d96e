"""IoU-based face tracking."""
