"""SQLAlchemy ORM model for the offers table (DDL reference only — queries use raw SQL)."""
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from src.p2p_common.database import Base


class OfferORM(Base):
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    vendor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    trade_intent: Mapped[str] = mapped_column(String(10), nullable=False)
    currency: Mapped[str] = mapped_column(String(16), nullable=False)
    price_per_unit: Mapped[int] = mapped_column(BigInteger, nullable=False)
    min_limit: Mapped[int] = mapped_column(BigInteger, nullable=False)
    max_limit: Mapped[int] = mapped_column(BigInteger, nullable=False)
    available_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    escrow_held_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    payment_methods: Mapped[list[str]] = mapped_column(ARRAY(String(50)), nullable=False)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
