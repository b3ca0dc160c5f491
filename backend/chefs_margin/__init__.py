"""Chef's Margin - restaurant margin & demand dashboard backend."""
