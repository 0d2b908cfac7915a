"""
Caisse Backend — Application Package Initializer
==================================================

What: Multi-tenant point-of-sale backend (users, roles, sales).
Who:  Imported by uvicorn (`app.main:app`), pytest and the CLI entry point.

Architecture Note:

    ┌─────────────────────────────────────┐
    │   Routes + Dependencies (API Layer) │  ← HTTP concerns, auth gates
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← normalization, scoping
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy tables + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← execute / fetch_one / fetch_many
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
