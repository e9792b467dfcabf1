from __future__ import annotations

from datetime import datetime
from sqlalchemy import String, Integer, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow
from .enums import CarStatus


class Car(Base):
    __tablename__ = "cars"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False, index=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey("brands.id"), nullable=False, index=True)
    model_id: Mapped[int] = mapped_column(ForeignKey("models.id"), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    mileage: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    fuel_type: Mapped[str] = mapped_column(String(20), nullable=False)
    gearbox_type: Mapped[str] = mapped_column(String(20), nullable=False)
    body_type: Mapped[str] = mapped_column(String(20), nullable=False)
    condition: Mapped[str] = mapped_column(String(20), nullable=False)
    color: Mapped[str | None] = mapped_column(String(40), nullable=True)
    cylinders: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=CarStatus.PENDING.value, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("Profile", back_populates="cars")
    brand = relationship("Brand")
    model = relationship("CarModel")
    images = relationship(
        "CarImage",
        back_populates="car",
        cascade="all, delete-orphan",
        order_by="CarImage.position",
    )

    @property
    def title(self) -> str:
        brand = self.brand.name if self.brand else ""
        model = self.model.name if self.model else ""
        return f"{brand} {model}".strip()
