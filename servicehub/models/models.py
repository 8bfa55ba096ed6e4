# servicehub/models/models.py

import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, Date, ForeignKey, Index, Numeric, String, Text, DateTime, Time,
    Enum as SAEnum, Uuid,
    func,
)
from sqlalchemy.orm import declarative_base, relationship, backref

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# ============================================================================
# ENUMS
# ============================================================================

class BookingStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    COMPLETED = "completed"


class NotificationType(enum.Enum):
    BOOKING_REQUEST = "booking_request"
    BOOKING_UPDATE = "booking_update"
    NEW_MESSAGE = "new_message"
    INFO = "info"
    SYSTEM = "system"


# ============================================================================
# ACCOUNT MODELS
# ============================================================================

class Profile(Base):
    """A user account. Clients and provider owners are both profiles."""
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(20), nullable=True)
    profile_photo_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now(), onupdate=_utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self):
        return f"<Profile(id={self.id}, email={self.email})>"


class ServiceProvider(Base):
    __tablename__ = "service_providers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False)
    business_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    # Relationship
    user = relationship("Profile", backref=backref("service_provider", uselist=False, cascade="all, delete-orphan"))

    def __repr__(self):
        return f"<ServiceProvider(id={self.id}, user_id={self.user_id})>"


class Service(Base):
    __tablename__ = "services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    service_provider_id = Column(Uuid(as_uuid=True), ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    business_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    # Relationship
    provider = relationship("ServiceProvider", backref=backref("services", lazy="dynamic", cascade="all, delete-orphan"))

    def __repr__(self):
        return f"<Service(id={self.id}, business_name={self.business_name})>"


# ============================================================================
# BOOKING MODELS
# ============================================================================

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    service_provider_id = Column(Uuid(as_uuid=True), ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=False)
    status = Column(
        SAEnum(BookingStatus, name="booking_status", values_callable=_enum_values),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    notes = Column(Text, nullable=True)
    duration_hours = Column(Numeric(5, 2), nullable=True)
    total_price = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now(), onupdate=_utcnow)

    __table_args__ = (
        Index("idx_bookings_client", "client_id"),
        Index("idx_bookings_provider", "service_provider_id"),
        Index("idx_bookings_status", "status"),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, date={self.booking_date}, status={self.status.value})>"


# ============================================================================
# MESSAGING MODELS
# ============================================================================

class Message(Base):
    """
    A direct message about one booking.
    There is no conversation table: conversations are derived from messages grouped by booking.
    """
    __tablename__ = "messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    # Relationships - explicit foreign_keys since both columns point at profiles
    sender = relationship("Profile", foreign_keys=[sender_id])
    recipient = relationship("Profile", foreign_keys=[recipient_id])

    __table_args__ = (
        Index("idx_messages_booking_created", "booking_id", "created_at"),
        Index("idx_messages_sender", "sender_id"),
        Index("idx_messages_recipient_unread", "recipient_id", "is_read"),
    )

    def __repr__(self):
        return f"<Message(id={self.id}, booking_id={self.booking_id})>"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(SAEnum(NotificationType, name="notification_type", values_callable=_enum_values), nullable=True)
    # Booking or message id; not a foreign key since declined bookings are deleted
    related_id = Column(Uuid(as_uuid=True), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    __table_args__ = (
        Index("idx_notifications_user", "user_id"),
        Index("idx_notifications_unread", "user_id", "is_read"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, title={self.title})>"


# ============================================================================
# ROW SERIALIZATION
# ============================================================================

def to_row(instance) -> dict:
    """Column values of a model instance as a JSON-friendly dict (realtime payloads)."""
    row = {}
    for column in instance.__table__.columns:
        value = getattr(instance, column.key)
        if isinstance(value, enum.Enum):
            value = value.value
        elif isinstance(value, uuid.UUID):
            value = str(value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        elif value is not None and not isinstance(value, (bool, int, float, str)):
            value = str(value)
        row[column.key] = value
    return row
