"""Phantombuster API access."""

from phantombuster_mcp.phantombuster.client import (
    AuthenticationError,
    PhantombusterClient,
    UpstreamError,
)

__all__ = ["AuthenticationError", "PhantombusterClient", "UpstreamError"]
