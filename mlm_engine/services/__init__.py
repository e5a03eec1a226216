"""Commission engine services."""
