"""
Streams stored objects after an ownership check.
"""
