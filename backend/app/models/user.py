"""
Caisse Backend — User Table Model
===================================

What:  ORM model for the `users` table.
Who:   Queried by the auth and user services; read by `Database.init_schema`
       to create the table or append columns missing from older databases.

Columns:
    - id:            Integer autoincrement primary key
    - email:         Unique login identifier (UNIQUE → ConflictError on duplicate)
    - password_hash: bcrypt hash, never returned by the API
    - role:          super_admin | admin | cashier | caissier | client | user
    - company:       Tenant the user belongs to
    - agencies:      Comma-separated agency names the user may see
"""

from typing import Optional

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class User(Base):
    """
    A login account.

    Lifecycle:
        Created by signup, by an admin, or by the bootstrap step at startup.
        Never updated in place; removed with DELETE /api/users/{id}.
    """

    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[Optional[str]] = mapped_column(Text, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(Text)
    role: Mapped[Optional[str]] = mapped_column(Text)
    company: Mapped[Optional[str]] = mapped_column(Text)
    agencies: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, role={self.role!r})>"
