"""Store user accounts."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from sqlalchemy import Boolean, DateTime, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column


class User(Base):
    """Shoppers and staff. Staff carry ``is_admin``."""

    __tablename__ = "store_users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="", server_default="")
    contact: Mapped[str] = mapped_column(String(50), default="", server_default="")
    is_admin: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false()
    )

    # {"house": ..., "landmark": ..., "address": ..., "city": ..., "postal_code": ...}
    default_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    reset_password_token: Mapped[Optional[str]] = mapped_column(
        String(64), index=True, nullable=True
    )
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<User {self.email}>"
