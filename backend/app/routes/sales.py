"""
Caisse Backend — Sales Routes
===============================

Route Inventory:
    POST   /api/sales        sale-writer roles; upsert by id
    GET    /api/sales        any authenticated caller; scoped listing
    DELETE /api/sales/{id}   admin; idempotent

The POST body is a free-form JSON object. Only the fields SaleService
normalizes are interpreted; everything else rides along in the snapshot.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from app.database import Database, get_database
from app.dependencies import require_admin, require_sale_writer, require_user
from app.exceptions import ValidationError
from app.schemas.auth import SessionUser
from app.schemas.common import ErrorResponse, OkResponse
from app.schemas.sale import SaleListResponse, SaleRecordedResponse
from app.services.sale_service import sale_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Sales"])


@router.post(
    "/sales",
    response_model=SaleRecordedResponse,
    responses={
        400: {"description": "Missing id or invalid amount", "model": ErrorResponse},
        403: {"description": "Role may not record sales", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
    summary="Record (or overwrite) a sale",
    description=(
        "Stores the sale under its client-supplied id (`id`, `sale_id` or `uid`). "
        "Resubmitting an id overwrites the sale but keeps its creation time."
    ),
)
async def record_sale(
    sale: Dict[str, Any] = Body(...),
    user: SessionUser = Depends(require_sale_writer),
    db: Database = Depends(get_database),
) -> SaleRecordedResponse:
    sale_id = await sale_service.record_sale(db, sale, user)
    return SaleRecordedResponse(id=sale_id)


@router.get(
    "/sales",
    response_model=SaleListResponse,
    responses={500: {"description": "Database error", "model": ErrorResponse}},
    summary="List sales visible to the caller",
)
async def list_sales(
    company: Optional[str] = Query(
        default=None,
        description="Company filter (honoured for super_admin only)",
    ),
    agency: Optional[str] = Query(
        default=None,
        description="Single agency filter (must be one of the caller's agencies)",
    ),
    user: SessionUser = Depends(require_user),
    db: Database = Depends(get_database),
) -> SaleListResponse:
    sales = await sale_service.list_sales(db, user, company=company, agency=agency)
    return SaleListResponse(sales=sales)


@router.delete(
    "/sales/{sale_id}",
    response_model=OkResponse,
    responses={
        400: {"description": "Blank id", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
    summary="Delete a sale",
    description="Succeeds whether or not the sale exists.",
)
async def delete_sale(
    sale_id: str,
    admin: SessionUser = Depends(require_admin),
    db: Database = Depends(get_database),
) -> OkResponse:
    sale_id = sale_id.strip()
    if not sale_id:
        raise ValidationError("missing_id", field="id")
    await sale_service.delete_sale(db, sale_id)
    logger.info("Sale %s deleted by %s", sale_id, admin.id)
    return OkResponse()
