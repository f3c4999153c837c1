"""
Use cases for mediaimport.

Each module holds one operation on imports: matching and classification of
incoming items, synchronisation runs, and management of import descriptors.
"""
