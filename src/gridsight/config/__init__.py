"""Configuration constants for vision processing."""
