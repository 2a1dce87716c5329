"""Utility helpers shared across pagecraft modules."""
