"""Utility helpers shared across the audio modules."""
