"""
Roster status report for coaches.
"""
