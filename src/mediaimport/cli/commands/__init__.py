"""
CLI command groups for mediaimport.
"""
