from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: gl_partitions
# ---------------------------


class GlPartition(Base):
    """One persisted ledger partition.

    ``payload`` holds the partition's serialized JSON array verbatim; it is
    stored as text (not a JSON column) so malformed payloads survive a read and
    can be reported instead of failing inside the driver.
    """

    __tablename__ = "gl_partitions"

    partition_key: Mapped[str] = mapped_column(String, primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    record_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )
