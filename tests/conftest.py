"""
Pytest configuration and fixtures
"""
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

# Los módulos de la aplicación viven en la raíz del proyecto
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

_db_dir = tempfile.mkdtemp(prefix="rental-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_db_dir}/test.db"
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient

import auth
import crud
import schemas
from database import Base, SessionLocal, engine, init_db
from main import app

PASSWORD = "secreto123"


@pytest.fixture(scope="function")
def db():
    """Sesión con un esquema limpio en cada test"""
    Base.metadata.drop_all(bind=engine)
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


def _user(db, email, **overrides):
    data = {
        "email": email,
        "first_name": "Ana",
        "last_name": "Pop",
        "phone_number": "0712345678",
        "driving_license": "B-123456",
        "password": PASSWORD,
    }
    data.update(overrides)
    return auth.register_user(db, schemas.UserCreate(**data))


@pytest.fixture
def customer(db):
    return _user(db, "ana@example.com")


@pytest.fixture
def other_customer(db):
    return _user(db, "mihai@example.com", first_name="Mihai")


@pytest.fixture
def admin(db):
    return _user(db, "admin@example.com", first_name="Admin")


def bearer(user):
    return {"Authorization": f"Bearer {auth.create_access_token({'sub': user.email})}"}


def car_payload(**overrides):
    data = {
        "name": "Dacia Logan 2023",
        "brand": "Dacia",
        "model": "Logan",
        "year": 2023,
        "color": "alb",
        "price_per_day": 30.0,
        "original_price_per_day": 40.0,
        "price_per_week": 190.0,
        "price_per_month": 700.0,
        "fuel_type": "gasoline",
        "transmission": "manual",
        "seats": 5,
        "doors": 4,
        "available_from": "2026-01-01T00:00:00",
        "available_to": "2026-12-31T00:00:00",
        "features": ["Aire acondicionado", "Bluetooth"],
        "image_url": "https://images.unsplash.com/photo-logan",
        "rating": 4.2,
        "location": "Bucarest",
        "description": "Berlina económica y espaciosa",
        "category": "economy",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_car(db):
    def _make(**overrides):
        return crud.create_car(db, schemas.CarBase(**car_payload(**overrides)))
    return _make


@pytest.fixture
def make_booking(db):
    def _make(user, car, start=datetime(2026, 5, 1), end=datetime(2026, 5, 4)):
        booking = schemas.BookingCreate(car_id=car.id, start_date=start, end_date=end)
        return crud.create_booking(db, booking=booking, user_id=user.id)
    return _make
