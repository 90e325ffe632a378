"""
Node directory: the read interface the protocol consumes, and an
in-memory registry implementing it.
"""

from sessionpay.directory.registry import NodeDirectory, NodeRegistry

__all__ = ["NodeDirectory", "NodeRegistry"]
