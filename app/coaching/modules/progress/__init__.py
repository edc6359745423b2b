"""
Progress tracking: body measurements and progress photos.
"""
