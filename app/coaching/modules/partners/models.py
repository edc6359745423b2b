from __future__ import annotations

import json
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.coaching.models import Base


class Partner(Base):
    """Brand offering a discount to students. The first uploaded image is the logo."""

    __tablename__ = "partners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    brand_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    coupon_code: Mapped[str] = mapped_column(String(64), nullable=False)
    discount_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    logo_storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_keys_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    @property
    def image_keys(self) -> list[str]:
        try:
            value = json.loads(self.image_keys_json or "[]")
        except json.JSONDecodeError:
            return []
        return [k for k in value if isinstance(k, str)] if isinstance(value, list) else []
