"""Core engine: configuration, error types and rigid transforms shared by
every geometry package."""
