"""Pytest configuration and shared fixtures."""

import os

# Set test database URL BEFORE any imports from copro
# This keeps the module-level engine away from any real database file
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from copro.api.app import app  # noqa: E402
from copro.models import Base, Building, Owner  # noqa: E402
from copro.services import get_db  # noqa: E402
from copro.services.charge_service import ChargeService  # noqa: E402

test_engine = create_engine(
    "sqlite:///:memory:",
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session():
    """Provide a test database session with all tables created."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def building(db_session):
    """Create a building with a 1000 millième basis."""
    building = Building(nom="Résidence Les Tilleuls", adresse="12 rue des Lilas", nombre_total_parts=Decimal("1000"))
    db_session.add(building)
    db_session.commit()
    return building


@pytest.fixture
def owners(db_session, building):
    """Create three owners holding 500, 300 and 200 millièmes (ids in that order)."""
    owners_data = [
        ("Bernard", "Alice", Decimal("500")),
        ("Dupont", "Bruno", Decimal("300")),
        ("Martin", "Chloé", Decimal("200")),
    ]
    owners = []
    for nom, prenom, milliemes in owners_data:
        owner = Owner(building_id=building.id, nom=nom, prenom=prenom, milliemes=milliemes)
        db_session.add(owner)
        owners.append(owner)
    db_session.commit()
    return owners


@pytest.fixture
def make_charge(db_session, building):
    """Factory creating a charge in the test building through ChargeService."""

    def _make_charge(**overrides):
        fields = {
            "type": "charges_generales",
            "libelle": "Entretien des parties communes",
            "montant_annuel": Decimal("1200.00"),
        }
        fields.update(overrides)
        return ChargeService(db_session).create_charge(building.id, **fields)

    return _make_charge


@pytest.fixture
def client(db_session):
    """Provide a FastAPI test client bound to the test session."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
