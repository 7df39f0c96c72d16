"""Domain layer for API: database models and schemas."""
