"""Concrete camera and consent adapters for the console client."""
