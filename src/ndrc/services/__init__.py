"""Request pipeline services: correlation, retries, file transfers, aggregation."""
