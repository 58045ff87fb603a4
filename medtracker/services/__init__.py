"""Document store adapters and background reminder services."""
