"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger partition table used by ``gem_ledger``.
"""

from .ledger import Base, GlPartition

__all__ = [
    "Base",
    "GlPartition",
]
