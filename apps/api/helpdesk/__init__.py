"""Help desk API package."""
