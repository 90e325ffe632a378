"""
SessionPay Sessions - id allocation and storage of session records.
"""

from sessionpay.sessions.store import SessionStore

__all__ = ["SessionStore"]
