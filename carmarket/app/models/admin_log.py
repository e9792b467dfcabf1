from __future__ import annotations

from datetime import datetime
from sqlalchemy import Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class AdminLog(Base):
    __tablename__ = "admin_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    admin_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    # profiles use string ids, cars integer ids
    record_id: Mapped[str] = mapped_column(String(36), nullable=False)
    changes: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
