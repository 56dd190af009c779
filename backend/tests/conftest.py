"""
Pytest configuration and shared fixtures
"""
import os
import tempfile

# The app lifespan bootstraps whatever DATABASE_URL points at; keep it off the working tree
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.mkdtemp(prefix='waterbill-test-'), 'lifespan.db')}"
)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from waterbill.database import Base, get_db
from waterbill.models import ontology  # noqa
from waterbill.models.ontology import Customer, User, UserRole
from waterbill.security.auth import get_password_hash, create_access_token
from waterbill.security.context import ActorContext
from waterbill.services.meter_reading_service import MeterReadingService
from waterbill.services.settings_service import SettingsService
from waterbill.main import app


@pytest.fixture(scope="function")
def db_engine():
    """In-memory database engine"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Database session"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Test client bound to the test session"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============== Tariff Fixtures ==============

@pytest.fixture
def tariff(db_session):
    """Default tariff: K1 1200 up to 40 m³, K2 3000, admin 3000, penalty 5000"""
    service = SettingsService(db_session)
    service.ensure_defaults()
    return service


@pytest.fixture
def actor():
    return ActorContext(performed_by="operator1", ip_address="10.0.0.7")


# ============== Auth Fixtures ==============

def _create_user(db_session, username, role):
    user = User(
        username=username,
        password_hash=get_password_hash("secret123"),
        name=username.title(),
        role=role,
        is_active=True
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "admin1", UserRole.ADMIN)


@pytest.fixture
def admin_token(admin_user):
    return create_access_token(admin_user.id, admin_user.role, username=admin_user.username)


@pytest.fixture
def operator_token(db_session):
    user = _create_user(db_session, "operator1", UserRole.OPERATOR)
    return create_access_token(user.id, user.role, username=user.username)


@pytest.fixture
def viewer_token(db_session):
    user = _create_user(db_session, "viewer1", UserRole.VIEWER)
    return create_access_token(user.id, user.role, username=user.username)


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def operator_headers(operator_token):
    return {"Authorization": f"Bearer {operator_token}"}


@pytest.fixture
def viewer_headers(viewer_token):
    return {"Authorization": f"Bearer {viewer_token}"}


# ============== Entity Fixtures ==============

@pytest.fixture
def sample_customer(db_session):
    """Customer with no readings"""
    customer = Customer(name="Budi Santoso", customer_number=1001)
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def second_customer(db_session):
    customer = Customer(name="Siti Aminah", customer_number=1002)
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def reading_service(db_session, tariff):
    return MeterReadingService(db_session)


@pytest.fixture
def billed_reading(reading_service, sample_customer):
    """First reading of 45 m³: bill of 66000 (admin 3000 + 48000 + 15000)"""
    return reading_service.create_reading(sample_customer.id, "2025-01", 45)


@pytest.fixture
def bill_63000(reading_service, sample_customer):
    """Bill of 63000: 44 m³ gives 3000 + 48000 + 12000"""
    reading = reading_service.create_reading(sample_customer.id, "2025-01", 44)
    return reading.bill
