"""Video generation worker."""
