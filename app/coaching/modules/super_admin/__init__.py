"""
Super admin tools: promote users and pre-create staff accounts.
"""
