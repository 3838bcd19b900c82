"""Core building blocks: strict models, error types and process settings."""
