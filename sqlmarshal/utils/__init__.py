"""Utility modules for sqlmarshal."""
