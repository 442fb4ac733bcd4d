"""
utils/ - Shared helpers
=======================
Logging, local-date and money formatting helpers.
"""
