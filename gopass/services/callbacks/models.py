"""Callback reconciler persistence: processed-deposit markers."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from gopass.common.db import Base


class ProcessedCallback(Base):
    """One row per deposit whose success callback has been reconciled.

    The primary key is the provider deposit id, so inserting this row in the
    same transaction as the business update makes finalization at-most-once.
    """

    __tablename__ = "processed_callbacks"

    deposit_id: Mapped[str] = mapped_column(String, primary_key=True)
    kind: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String)
    outcome: Mapped[str] = mapped_column(String, index=True)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
