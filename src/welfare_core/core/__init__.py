"""Core infrastructure: configuration, storage, caching and result types."""
