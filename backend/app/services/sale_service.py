"""
Caisse Backend — Sale Service
===============================

What:  Records sales (idempotent upsert), lists them with tenant scoping,
       and deletes them.
Who:   Called by the /api/sales route handlers.

Recording Flow (POST /api/sales):
    body ──▶ normalize_sale() ──▶ INSERT ... ON CONFLICT(id) DO UPDATE
                 │
                 └── id / company / agency / seller / total_cents / payload_json

    A resubmitted id overwrites the normalized columns and the payload
    snapshot; created_at keeps the first submission's timestamp, so a till
    retrying after a timeout cannot duplicate or re-date a sale.

Listing Scope (GET /api/sales):
    ┌──────────────┬──────────────────────────────┬───────────────────────────────┐
    │ caller       │ company                      │ agency                        │
    ├──────────────┼──────────────────────────────┼───────────────────────────────┤
    │ super_admin  │ ?company, else own, else all │ ?agency, else all             │
    │ anyone else  │ own (query ignored)          │ ?agency if allowed, else the  │
    │              │                              │ allowed set; empty set → none │
    └──────────────┴──────────────────────────────┴───────────────────────────────┘

    Rows come back newest first (ties broken by id, descending), capped at
    SALES_LIST_LIMIT.
"""

import json
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.sql.elements import ColumnElement

from app.config import settings
from app.database import Database
from app.exceptions import ValidationError
from app.models.sale import Sale
from app.roles import is_super_admin
from app.schemas.auth import SessionUser

logger = logging.getLogger(__name__)

# Columns that always win over same-named keys of the payload snapshot
CANONICAL_COLUMNS = ("id", "company", "agency", "seller", "total_cents", "created_at")

# Columns a resubmission overwrites; created_at keeps the first value
UPSERT_COLUMNS = ("company", "agency", "seller", "total_cents", "payload_json")

SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


def _first_truthy(body: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = body.get(key)
        if value:
            return value
    return None


def _to_minor_units(value: Any, field: str, scale: int) -> int:
    """Round `value * scale` half-up to an integer."""
    if isinstance(value, bool):
        raise ValidationError("invalid_total", field=field)
    try:
        amount = Decimal(str(value).strip()) * scale
        if not amount.is_finite():
            raise ValidationError("invalid_total", field=field)
        cents = int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("invalid_total", field=field) from exc
    # SQLite INTEGER is a signed 64-bit value
    if not SQLITE_INT_MIN <= cents <= SQLITE_INT_MAX:
        raise ValidationError("invalid_total", field=field)
    return cents


def total_cents_from(body: Mapping[str, Any]) -> int:
    """
    Amount in minor units.

    `total_cents` / `totalCents` are already in cents; otherwise `total`
    is in major units and is multiplied by 100. Missing → 0.
    """
    for key in ("total_cents", "totalCents"):
        if body.get(key) is not None:
            return _to_minor_units(body[key], key, 1)
    total = body.get("total")
    return _to_minor_units(total if total is not None else 0, "total", 100)


def normalize_sale(body: Mapping[str, Any], user: SessionUser) -> Dict[str, Any]:
    """
    Derive the stored columns from a submitted sale.

    Raises:
        ValidationError: no usable id, or a non-numeric amount
    """
    sale_id = str(_first_truthy(body, "id", "sale_id", "uid") or "").strip()
    if not sale_id:
        raise ValidationError("missing_id", field="id")

    company = _first_truthy(body, "company") or user.company or settings.default_company
    agency = _first_truthy(body, "agency", "store", "point_of_sale") or ""
    seller = _first_truthy(body, "seller", "user") or user.email or ""

    return {
        "id": sale_id,
        "company": str(company).strip(),
        "agency": str(agency).strip(),
        "seller": str(seller).strip(),
        "total_cents": total_cents_from(body),
        "payload_json": json.dumps(body, ensure_ascii=False),
    }


def build_sales_filter(
    user: SessionUser,
    company: Optional[str] = None,
    agency: Optional[str] = None,
) -> Optional[List[ColumnElement]]:
    """
    WHERE conditions for a sale listing by `user`.

    Returns:
        A list of conditions (possibly empty, meaning "no restriction"), or
        None when the caller is entitled to no rows at all.
    """
    company = (company or "").strip()
    agency = (agency or "").strip()

    if is_super_admin(user.role):
        conditions: List[ColumnElement] = []
        target_company = company or user.company
        if target_company:
            conditions.append(Sale.company == target_company)
        if agency:
            conditions.append(Sale.agency == agency)
        return conditions

    allowed = user.agency_list
    if not allowed:
        return None
    if agency and agency not in allowed:
        return None

    conditions = [Sale.company == user.company]
    if agency:
        conditions.append(Sale.agency == agency)
    else:
        conditions.append(Sale.agency.in_(allowed))
    return conditions


def expand_sale_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Merge the payload snapshot under the canonical columns.

    Snapshot keys the columns do not model are kept; on a key clash the
    canonical column wins. An unreadable or non-object snapshot adds nothing.
    """
    snapshot: Dict[str, Any] = {}
    raw = row.get("payload_json")
    if raw:
        try:
            decoded = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Sale %s has an unreadable payload snapshot", row.get("id"))
            decoded = None
        if isinstance(decoded, dict):
            snapshot = decoded

    sale = dict(snapshot)
    sale.update({column: row.get(column) for column in CANONICAL_COLUMNS})
    return sale


class SaleService:
    """Business logic for sales."""

    async def record_sale(
        self,
        db: Database,
        body: Mapping[str, Any],
        user: SessionUser,
    ) -> str:
        """
        Insert or overwrite a sale keyed by its client-supplied id.

        Returns:
            The id the sale was stored under
        """
        fields = normalize_sale(body, user)

        stmt = sqlite_insert(Sale).values(**fields)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Sale.id],
            set_={column: getattr(stmt.excluded, column) for column in UPSERT_COLUMNS},
        )
        await db.execute(stmt)

        logger.info(
            "Sale %s recorded: company=%s agency=%s total_cents=%d by user %s",
            fields["id"],
            fields["company"],
            fields["agency"],
            fields["total_cents"],
            user.id,
        )
        return fields["id"]

    async def list_sales(
        self,
        db: Database,
        user: SessionUser,
        company: Optional[str] = None,
        agency: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Sales visible to `user`, newest first, expanded with their snapshots."""
        conditions = build_sales_filter(user, company=company, agency=agency)
        if conditions is None:
            logger.debug("User %s is entitled to no sales for agency=%r", user.id, agency)
            return []

        stmt = select(
            Sale.id,
            Sale.company,
            Sale.agency,
            Sale.seller,
            Sale.total_cents,
            Sale.payload_json,
            Sale.created_at,
        )
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(func.datetime(Sale.created_at).desc(), Sale.id.desc()).limit(
            settings.sales_list_limit
        )

        rows = await db.fetch_many(stmt)
        return [expand_sale_row(row) for row in rows]

    async def delete_sale(self, db: Database, sale_id: str) -> None:
        result = await db.execute(delete(Sale).where(Sale.id == sale_id))
        logger.info("Delete sale %s (rows affected: %d)", sale_id, result.rowcount)


# ── Singleton Instance ────────────────────────────────────────────────────
sale_service = SaleService()
