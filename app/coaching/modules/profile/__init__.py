"""
Own-profile page (name and avatar) for every role.
"""
