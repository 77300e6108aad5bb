"""
Control Channel Schemas

Request/response payloads exchanged between the UI layer and the shell
over the control channel. Field names match what the renderer sends, so
they stay camelCase.

    GET  /api/diagnostics     -> DiagnosticsResponse
    POST /api/proxy           ToggleProxyRequest -> {}
    POST /api/cookies/clear   ClearCookiesRequest -> {}
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ToggleProxyRequest(BaseModel):
    """
    Switch record-session capture on or off.

    Example payload:
    {
        "enabled": true
    }
    """

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(..., description="Route the record session through the backend")


class ClearCookiesRequest(BaseModel):
    """
    Clear all storage data for one session partition.

    Example payload:
    {
        "isReplay": false
    }
    """

    model_config = ConfigDict(extra="forbid")

    isReplay: bool = Field(False, description="Clear the replay partition instead of record")


class DiagnosticsResponse(BaseModel):
    """Discovered metadata plus recent backend output for the About/Debug view."""

    config: dict[str, Any] = Field(default_factory=dict, description="Discovered metadata")
    logText: str = Field("", description="Recent log lines, <BR>-separated")
