"""
Caisse Backend — Sale Table Model
===================================

What:  ORM model for the `sales` table.
Who:   Written and read by SaleService; read by `Database.init_schema`.

Table Design:
    - id is supplied by the client (the till generates it), which makes
      recording a sale an upsert: resubmitting the same id overwrites the
      normalized columns and the payload snapshot, never `created_at`.
    - total_cents is stored in integer minor units.
    - payload_json keeps the full submitted body so listings can return
      fields the normalized columns do not model.
    - created_at is assigned by SQLite (`datetime('now')`, UTC,
      `YYYY-MM-DD HH:MM:SS`) and drives the newest-first listing order.
"""

from typing import Optional

from sqlalchemy import Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Sale(Base):
    """A recorded point-of-sale transaction."""

    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    company: Mapped[Optional[str]] = mapped_column(Text)
    agency: Mapped[Optional[str]] = mapped_column(Text)
    seller: Mapped[Optional[str]] = mapped_column(Text)
    total_cents: Mapped[Optional[int]] = mapped_column(Integer)
    payload_json: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[Optional[str]] = mapped_column(
        Text,
        server_default=text("(datetime('now'))"),
    )

    def __repr__(self) -> str:
        return f"<Sale(id={self.id!r}, company={self.company!r}, agency={self.agency!r})>"
