"""
mediaimport - synchronisation of media imported from external sources into a local library.
"""

__version__ = "0.1.0"
