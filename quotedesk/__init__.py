"""Quote acceptance and work order service."""
