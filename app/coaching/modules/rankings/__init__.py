"""
Student rankings by recent check-in and by training frequency.
"""
