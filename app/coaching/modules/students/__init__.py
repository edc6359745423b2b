"""
Student administration (coach side): roster, invites, plans, archival.
"""
