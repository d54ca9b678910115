"""Purchase request lifecycle engine."""
