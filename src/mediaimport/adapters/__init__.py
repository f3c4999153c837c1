"""
Adapters for mediaimport.

Import handlers translating between the synchronisation engine and the
library, and the enrichers completing local items before comparison.
"""
