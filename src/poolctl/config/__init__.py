"""Configuration — pydantic-settings models, TOML discovery, logging setup."""
