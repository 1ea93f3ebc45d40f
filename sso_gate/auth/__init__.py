"""Redirect resolution, relay forms and request serialization."""
