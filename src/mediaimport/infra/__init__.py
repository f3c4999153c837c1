"""
Infrastructure layer - database, logging, settings, and technical concerns.

This layer contains infrastructure concerns like database access,
the library repository, logging and configuration.
"""
