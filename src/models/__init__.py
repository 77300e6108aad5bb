"""
Data models for the desktop shell control channel
"""

from .control import ClearCookiesRequest, DiagnosticsResponse, ToggleProxyRequest

__all__ = [
    "ClearCookiesRequest",
    "DiagnosticsResponse",
    "ToggleProxyRequest",
]
