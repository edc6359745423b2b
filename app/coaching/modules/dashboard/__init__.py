"""
Landing pages for each area.
"""
