"""
Partner discount listings (coach-managed, student-browsable).
"""
