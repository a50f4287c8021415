"""Entrypoints into the dojo system."""
