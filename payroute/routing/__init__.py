"""Route discovery: providers, caching, and aggregation."""
