"""
SessionPay Runtime - configuration and process wiring.
"""

from sessionpay.runtime.config import SessionPayConfig
from sessionpay.runtime.context import RuntimeContext

__all__ = [
    "SessionPayConfig",
    "RuntimeContext",
]
