"""
Browser sessions module.

Structure:
- sessions.py - Partitioned network sessions and proxy configs
- router.py - Record/replay proxy routing through the backend
"""

from __future__ import annotations

from .router import SessionRouter
from .sessions import (
    DIRECT,
    NetworkSession,
    PartitionSession,
    ProxyConfig,
    SessionRegistry,
    partition_name,
)

__all__ = [
    "DIRECT",
    "NetworkSession",
    "PartitionSession",
    "ProxyConfig",
    "SessionRegistry",
    "SessionRouter",
    "partition_name",
]
