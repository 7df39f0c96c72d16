"""Infrastructure for API: database, repositories, DI container and logging."""
