"""
Shared types, schemas and path helpers used across layers.
"""
