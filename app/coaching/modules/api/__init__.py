"""
JSON handlers used by the coach and super admin screens.
"""
