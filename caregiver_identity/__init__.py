"""
Identity and access-control core for the multi-caregiver baby tracker.

Covers caregiver credentials, brute-force account lockout, API keys and
the caregiver invitation lifecycle.
"""

__version__ = "1.0.0"
