"""
Domain layer - import descriptors, media items and library entities.

This layer contains the core values the synchronisation engine works on,
independent of any external concerns.
"""
