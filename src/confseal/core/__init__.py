"""Core helpers shared across confseal."""
