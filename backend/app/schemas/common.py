"""
Caisse Backend — Shared Response Envelopes
============================================

What:  The `{ok: ...}` envelopes every endpoint returns.
Why:   One success shape and one error shape across the whole API, so
       clients branch on `ok` alone.
"""

from typing import Optional

from pydantic import BaseModel, Field


class OkResponse(BaseModel):
    """Bare success acknowledgement: `{"ok": true}`."""
    ok: bool = Field(default=True, description="Always true on success")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response for all API errors.

    Example:
        {"ok": false, "error": "Invalid credentials", "request_id": "a1b2c3d4"}
    """
    ok: bool = Field(default=False, description="Always false on error")
    error: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health."""
    ok: bool = Field(description="True when the database answered SELECT 1")
    db: str = Field(default="sqlite", description="Storage engine")
    path: str = Field(description="Database file path")
