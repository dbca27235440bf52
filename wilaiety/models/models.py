import enum
import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    JSON,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


# Enumerations are stored by their Arabic value, which is what the
# registry has always persisted; French labels live in services.i18n.

class AppRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class FacilitySector(str, enum.Enum):
    HEALTH = "صحية"
    EDUCATION = "تعليمية"
    INDUSTRY = "صناعية"
    AGRICULTURE = "زراعية"
    SPORT = "رياضية"
    CULTURE = "ثقافية"
    SOCIAL = "اجتماعية"
    RELIGIOUS = "دينية"
    TRANSPORT = "نقل"
    COMMERCE = "تجارة"
    TOURISM = "سياحة"
    ADMINISTRATIVE = "إدارية"
    JUDICIAL = "قضائية"
    POLITICAL = "سياسية"
    FINANCE = "مالية"
    ELECTRICITY = "كهربائية"
    WATER = "مائية"
    TECHNOLOGY = "تكنولوجية"
    ENVIRONMENT = "بيئية"


class FacilityStatus(str, enum.Enum):
    ACTIVE = "نشط"
    INACTIVE = "غير نشط"
    UNDER_CONSTRUCTION = "قيد الإنشاء"
    SUSPENDED = "معلق"


class JurisdictionType(str, enum.Enum):
    PRIVATE = "خاص"
    DELEGATED = "محال"
    COORDINATION = "تنسيق"


class OwnershipType(str, enum.Enum):
    FULL = "ملكية كاملة"
    RENTAL = "إيجار"
    PARTNERSHIP = "شراكة"
    CO_OWNED = "مملوكة مع جهة أخرى"


class LegalDomain(str, enum.Enum):
    PUBLIC = "مجال عام للجهة"
    PRIVATE = "مجال خاص للجهة"
    OUTSIDE = "خارج ملكية الجهة"


class LicenseStatus(str, enum.Enum):
    VALID = "ساري"
    EXPIRING_SOON = "قريب الانتهاء"
    EXPIRED = "منتهي"
    CANCELLED = "ملغى"


class DivisionType(str, enum.Enum):
    WILAYA = "ولاية"
    MOUGHATAA = "مقاطعة"
    COMMUNE = "بلدية"
    FREE_ZONE = "منطقة حرة"


class User(Base):
    """Authentication identity. Descriptive data lives in Profile, the role in UserRole."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    role_row = relationship("UserRole", back_populates="user", uselist=False, cascade="all, delete-orphan")


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    job_title: Mapped[Optional[str]] = mapped_column(String(255))
    department: Mapped[Optional[str]] = mapped_column(String(255))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="profile")


class UserRole(Base):
    """One role per user, kept apart from the profile so users cannot edit it."""
    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=AppRole.USER.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    user = relationship("User", back_populates="role_row")


class AdministrativeDivision(Base):
    __tablename__ = "administrative_divisions"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_fr: Mapped[str] = mapped_column(String(255), nullable=False)
    gps_coordinates: Mapped[Optional[str]] = mapped_column(String(64))
    division_type: Mapped[str] = mapped_column(String(50), nullable=False, default=DivisionType.COMMUNE.value)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("administrative_divisions.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    parent = relationship("AdministrativeDivision", remote_side=[id], backref="children")


class Facility(Base):
    __tablename__ = "facilities"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_fr: Mapped[Optional[str]] = mapped_column(String(100))
    short_name: Mapped[str] = mapped_column(String(20), nullable=False)
    legal_name: Mapped[str] = mapped_column(String(150), nullable=False)
    sector: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    activity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    facility_type: Mapped[str] = mapped_column(String(100), nullable=False)
    jurisdiction_type: Mapped[str] = mapped_column(String(50), nullable=False)
    created_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    gps_coordinates: Mapped[Optional[str]] = mapped_column(String(64))
    location_accuracy: Mapped[Optional[str]] = mapped_column(String(50))
    region: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False)
    ownership: Mapped[str] = mapped_column(String(50), nullable=False)
    legal_domain: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=FacilityStatus.ACTIVE.value, index=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024))
    website_url: Mapped[Optional[str]] = mapped_column(String(1024))
    division_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("administrative_divisions.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    licenses = relationship("License", back_populates="facility")
    division = relationship("AdministrativeDivision")


class License(Base):
    __tablename__ = "licenses"

    id: Mapped[uuid.UUID] = uuid_pk()
    facility_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("facilities.id"), nullable=False, index=True)
    license_number: Mapped[str] = mapped_column(String(100), nullable=False)
    license_type: Mapped[str] = mapped_column(String(255), nullable=False)
    issuing_authority: Mapped[str] = mapped_column(String(255), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=LicenseStatus.VALID.value, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    document_url: Mapped[Optional[str]] = mapped_column(String(1024))
    image_url: Mapped[Optional[str]] = mapped_column(String(1024))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    facility = relationship("Facility", back_populates="licenses")


class ActivityLog(Base):
    """Append-only trail of security relevant actions"""
    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    user_email: Mapped[Optional[str]] = mapped_column(String(255))
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSON)
    ip_address: Mapped[Optional[str]] = mapped_column(String(255))
    user_agent: Mapped[Optional[str]] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_activity_user_created', 'user_id', 'created_at'),
    )
