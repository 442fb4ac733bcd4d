"""
models/ - Domain Layer
======================
Subscription records, the billing recurrence value and the error types.
"""
