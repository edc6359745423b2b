"""
Subscription gating

Plan expiration math and the access check used to block student content.
"""
