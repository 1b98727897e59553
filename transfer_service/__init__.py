"""
Archives Transfer Service — Application Package
=================================================

Backend for the archives submission form: it hands out submission
identifiers, lists genres, and receives the uploaded files.

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Upload reassembly, lookups
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database & Storage (Persistence)  │  ← Async SQLAlchemy, aiofiles
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
