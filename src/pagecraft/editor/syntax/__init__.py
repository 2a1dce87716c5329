"""Directive grammar, rendering and legacy normalization."""
