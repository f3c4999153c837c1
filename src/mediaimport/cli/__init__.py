"""
Command-line interface for mediaimport.
"""
