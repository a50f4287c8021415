"""Adapters for persistence and delivery."""
