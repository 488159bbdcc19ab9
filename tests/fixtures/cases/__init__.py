"""Deterministic fixtures for NDRC case tests."""
