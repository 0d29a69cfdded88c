"""Configuration generators."""
