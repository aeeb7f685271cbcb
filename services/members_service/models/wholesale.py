"""Wholesale applications gating the Wholesale Buyer role."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.members_service.models.enums import (
    WholesaleApplicationStatus,
    enum_values,
)
from sqlalchemy import JSON, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class WholesaleApplication(Base):
    __tablename__ = "wholesale_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    business_name: Mapped[str] = mapped_column(String(255))
    tax_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    business_type: Mapped[str] = mapped_column(String(100))
    # {"street", "city", "state", "postal_code", "country"}
    address: Mapped[dict] = mapped_column(JSON)
    phone: Mapped[str] = mapped_column(String(50))
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[WholesaleApplicationStatus] = mapped_column(
        SAEnum(
            WholesaleApplicationStatus,
            values_callable=enum_values,
            name="wholesale_application_status_enum",
        ),
        default=WholesaleApplicationStatus.PENDING,
        index=True,
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    user = relationship("User")

    def __repr__(self):
        return f"<WholesaleApplication {self.business_name} status={self.status}>"
