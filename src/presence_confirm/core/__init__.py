"""Presence flow: event loading, camera, location, wizard and submission."""
