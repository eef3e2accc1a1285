"""Astro API - account store and n8n webhook relay for the astrology app."""

__version__ = "1.0.0"
