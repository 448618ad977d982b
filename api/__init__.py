"""Admin API for the content acquisition pipeline."""
