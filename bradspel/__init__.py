"""
Bradspel Backend — Application Package Initializer
===================================================

What: Marks the `bradspel` directory as a Python package.
Who:  Imported by uvicorn (`bradspel.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Schemas (input normalization)     │  ← request body → command object
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← lending workflow, auth, catalog
    ├─────────────────────────────────────┤
    │        Models (SQLAlchemy ORM)      │  ← games, history, orders, users
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Only the services layer owns transaction boundaries. Routes never issue SQL.
"""

__version__ = "1.0.0"
