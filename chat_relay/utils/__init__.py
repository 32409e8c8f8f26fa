"""Shared helpers: error taxonomy and JSON response formatting."""
