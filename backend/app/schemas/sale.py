"""
Caisse Backend — Sale Schemas
===============================

What:  Response shapes for the sales endpoints.

Sale bodies are accepted as free-form JSON objects: tills send extra
fields (line items, payment method, ...) that are kept verbatim in the
payload snapshot, so there is no request model.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class SaleRecordedResponse(BaseModel):
    """Returned by POST /api/sales."""
    ok: bool = True
    id: str = Field(description="Identifier the sale was stored under")


class SaleListResponse(BaseModel):
    """
    Returned by GET /api/sales.

    Each item holds the snapshot fields merged under the canonical columns
    (id, company, agency, seller, total_cents, created_at).
    """
    ok: bool = True
    sales: List[Dict[str, Any]]
