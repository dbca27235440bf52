import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("REFRESH_LICENSE_STATUS_ON_STARTUP", "false")

from datetime import date, timedelta

import pytest
import reportlab
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wilaiety.auth.security import create_access_token, get_password_hash
from wilaiety.config import settings
from wilaiety.db import Base, get_db
from wilaiety.main import create_app
from wilaiety.models.models import Facility, License, Profile, User, UserRole
from wilaiety.services.licensing import derive_status, regional_today
from wilaiety.storage import get_storage
from wilaiety.storage.local_provider import LocalStorageProvider


PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageProvider(str(tmp_path / "storage"))


@pytest.fixture
def app(session_factory, storage):
    application = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_storage] = lambda: storage
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def pdf_font(monkeypatch):
    """reportlab's bundled Vera font, so documents render on hosts without system fonts."""
    path = os.path.join(os.path.dirname(reportlab.__file__), "fonts", "Vera.ttf")
    monkeypatch.setattr(settings, "pdf_font_path", path)
    monkeypatch.setattr(settings, "pdf_font_bold_path", None)
    return path


def make_user(db, email, role="user", password=PASSWORD, full_name=None, is_active=True):
    user = User(email=email, password_hash=get_password_hash(password), is_active=is_active)
    user.profile = Profile(full_name=full_name or email.split("@")[0])
    if role is not None:
        user.role_row = UserRole(role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


def make_facility(db, **overrides):
    data = {
        "name": "مستشفى نواذيبو",
        "short_name": "HN",
        "legal_name": "مستشفى نواذيبو الجهوي",
        "sector": "صحية",
        "activity_type": "رعاية صحية",
        "facility_type": "مستشفى",
        "jurisdiction_type": "خاص",
        "created_date": date(2015, 3, 1),
        "description": "مستشفى جهوي يخدم الولاية",
        "gps_coordinates": "20.9420,-17.0470",
        "region": "نواذيبو",
        "address": "شارع الاستقلال، نواذيبو",
        "ownership": "ملكية كاملة",
        "legal_domain": "مجال عام للجهة",
        "status": "نشط",
    }
    data.update(overrides)
    facility = Facility(**data)
    db.add(facility)
    db.commit()
    db.refresh(facility)
    return facility


def make_license(db, facility, days_left=100, number="LIC-001", status=None, **overrides):
    today = regional_today()
    expiry = today + timedelta(days=days_left)
    lic = License(
        facility_id=facility.id,
        license_number=number,
        license_type="رخصة استغلال",
        issuing_authority="وزارة الصحة",
        issue_date=min(expiry, today) - timedelta(days=365),
        expiry_date=expiry,
        status=status or derive_status(expiry, today),
        **overrides,
    )
    db.add(lic)
    db.commit()
    db.refresh(lic)
    return lic


def facility_payload(**overrides):
    data = {
        "name": "Port Hospital",
        "short_name": "PH",
        "legal_name": "Port Regional Hospital",
        "sector": "صحية",
        "activity_type": "Soins",
        "facility_type": "Hôpital",
        "jurisdiction_type": "خاص",
        "created_date": "2015-03-01",
        "description": "Hôpital régional du port",
        "gps_coordinates": "20.9420,-17.0470",
        "region": "Nouadhibou",
        "address": "Avenue du Port, Nouadhibou",
        "ownership": "ملكية كاملة",
        "legal_domain": "مجال عام للجهة",
    }
    data.update(overrides)
    return data


@pytest.fixture
def admin(db):
    return make_user(db, "admin@wilaiety.mr", role="admin", full_name="المدير")


@pytest.fixture
def member(db):
    return make_user(db, "agent@wilaiety.mr", role="user", full_name="Agent")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def member_headers(member):
    return auth_headers(member)
