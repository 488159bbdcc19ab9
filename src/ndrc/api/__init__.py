"""HTTP API of the NDRC case service."""
