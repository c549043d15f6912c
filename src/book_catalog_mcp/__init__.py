"""
Book Catalog MCP Server Package.

A small catalog service: clients query and mutate books and authors,
authenticate to gain write access, and receive live notifications when
new books are added.

Key Components:
- models: Pydantic models for API and stored shapes
- database: SQLAlchemy schema, sessions and repositories
- auth: token signing, identity verification, the write gate
- engine: operation contracts and the resolution engine
- notifications: the in-process book-added channel
- server: FastMCP transport binding
"""

__version__ = "0.1.0"
