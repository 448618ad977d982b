"""Resilient content-acquisition pipeline for adversarial content sources."""
