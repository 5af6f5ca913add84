"""SQLAlchemy models for the help location directory."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Text

from .base import Base


class HelpLocationModel(Base):
    """A physical support location that can be matched by distance."""

    __tablename__ = "help_locations"

    id = Column(
        Text,
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
    )
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    website_url = Column(Text, nullable=True)
    type = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    __table_args__ = (Index("ix_help_locations_is_active", "is_active"),)
