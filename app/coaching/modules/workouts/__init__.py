"""
Workouts

Coach-assigned workout PDFs, structured routines, the exercise library and
student-side exercise logs and check-ins.
"""
