"""Core data models and validation."""
