# remindd/core/models.py

from sqlalchemy import BigInteger, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from remindd.core.db import Base


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    delivery_token: Mapped[str | None] = mapped_column(String, nullable=True)
    delivery_endpoint: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    cooldowns: Mapped[list["CooldownRow"]] = relationship(
        "CooldownRow",
        back_populates="subscription",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class CooldownRow(Base):
    __tablename__ = "cooldown_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("subscriptions.user_id", ondelete="CASCADE"), nullable=False
    )
    resource_key: Mapped[str] = mapped_column(String, nullable=False)
    network: Mapped[str] = mapped_column(String, nullable=False)
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cooldown_end: Mapped[int] = mapped_column(BigInteger, nullable=False)

    subscription: Mapped["SubscriptionRow"] = relationship(
        "SubscriptionRow", back_populates="cooldowns"
    )

    __table_args__ = (UniqueConstraint("user_id", "resource_key", "network"),)
