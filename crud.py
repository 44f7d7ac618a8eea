import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from models import User, Car, Booking
from schemas import UserCreate, CarBase, BookingCreate, BookingStatusUpdate
from config import ADMIN_EMAILS
import pricing

logger = logging.getLogger(__name__)

# Operaciones de usuario
def create_user(db: Session, user: UserCreate, hashed_password: str):
    db_user = User(
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone_number=user.phone_number,
        driving_license=user.driving_license,
        hashed_password=hashed_password,
        role="admin" if user.email.lower() in ADMIN_EMAILS else "customer"
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def get_user(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()

def get_users(db: Session, skip: int = 0, limit: int = 100):
    return db.query(User).order_by(User.id).offset(skip).limit(limit).all()

# Operaciones de coches
def create_car(db: Session, car: CarBase):
    db_car = Car(**car.model_dump(mode="python"))
    db.add(db_car)
    db.commit()
    db.refresh(db_car)
    logger.info("Coche creado: id=%s %s", db_car.id, db_car.name)
    return db_car

def get_car(db: Session, car_id: int):
    return db.query(Car).filter(Car.id == car_id).first()

def _filter_cars(query, search: str = None, category: str = None):
    if search:
        term = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Car.brand).like(term),
            func.lower(Car.model).like(term),
            func.lower(Car.description).like(term),
        ))
    if category:
        query = query.filter(Car.category == category)
    return query

def get_cars(db: Session, skip: int = 0, limit: int = 100, search: str = None, category: str = None):
    query = _filter_cars(db.query(Car), search=search, category=category)
    return query.order_by(Car.id).offset(skip).limit(limit).all()

def get_cars_by_name(db: Session, search: str = None, category: str = None):
    query = _filter_cars(db.query(Car), search=search, category=category)
    return query.order_by(Car.name.asc()).all()

def get_offers(db: Session, category: str = None):
    """Coches con precio rebajado respecto al original"""
    query = db.query(Car).filter(
        Car.original_price_per_day.isnot(None),
        Car.original_price_per_day > Car.price_per_day,
    )
    query = _filter_cars(query, category=category)
    return query.order_by(Car.id).all()

def get_featured_cars(db: Session, limit: int = 12):
    return db.query(Car).order_by(Car.rating.desc(), Car.id).limit(limit).all()

def update_car(db: Session, car_id: int, car: CarBase):
    db_car = get_car(db, car_id)
    for field, value in car.model_dump(mode="python").items():
        setattr(db_car, field, value)
    db.commit()
    db.refresh(db_car)
    logger.info("Coche actualizado: id=%s", car_id)
    return db_car

def delete_car(db: Session, car_id: int):
    db_car = get_car(db, car_id)
    db.delete(db_car)
    db.commit()
    logger.info("Coche eliminado: id=%s", car_id)

# Operaciones de reservas
def create_booking(db: Session, booking: BookingCreate, user_id: int):
    car = get_car(db, booking.car_id)
    if car is None:
        raise LookupError("Coche no encontrado")

    # Lanza ValueError si el periodo no es válido
    days = pricing.rental_days(booking.start_date, booking.end_date)

    db_booking = Booking(
        car_id=car.id,
        user_id=user_id,
        car_name=car.name,
        car_image_url=car.image_url,
        start_date=booking.start_date,
        end_date=booking.end_date,
        number_of_days=days,
        total_price=pricing.total_price(car.price_per_day, booking.start_date, booking.end_date),
        status="pending",
        payment_status="pending",
    )
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    logger.info(
        "Reserva creada: id=%s coche=%s usuario=%s dias=%s total=%.2f",
        db_booking.id, car.id, user_id, days, db_booking.total_price,
    )
    return db_booking

def get_booking(db: Session, booking_id: int):
    return db.query(Booking).filter(Booking.id == booking_id).first()

def get_bookings(db: Session, skip: int = 0, limit: int = 100):
    return db.query(Booking).order_by(Booking.created_at.desc(), Booking.id.desc())\
        .offset(skip).limit(limit).all()

def get_user_bookings(db: Session, user_id: int):
    return db.query(Booking).filter(Booking.user_id == user_id)\
        .order_by(Booking.created_at.desc(), Booking.id.desc()).all()

def update_booking_status(db: Session, booking_id: int, update: BookingStatusUpdate):
    db_booking = get_booking(db, booking_id)
    if update.status is not None:
        db_booking.status = update.status.value
    if update.payment_status is not None:
        db_booking.payment_status = update.payment_status.value
    db.commit()
    db.refresh(db_booking)
    logger.info(
        "Reserva %s: estado=%s pago=%s", booking_id, db_booking.status, db_booking.payment_status
    )
    return db_booking

# Estadísticas
def get_dashboard_stats(db: Session):
    bookings_by_status = dict(
        db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    )
    cars_by_category = dict(
        db.query(Car.category, func.count(Car.id)).group_by(Car.category).all()
    )
    revenue = db.query(func.coalesce(func.sum(Booking.total_price), 0))\
        .filter(Booking.payment_status == "paid").scalar()
    since = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=30)

    return {
        "total_cars": db.query(Car).count(),
        "total_users": db.query(User).count(),
        "total_bookings": db.query(Booking).count(),
        "bookings_by_status": bookings_by_status,
        "cars_by_category": cars_by_category,
        "revenue": float(revenue or 0),
        "bookings_last_30_days": db.query(Booking).filter(Booking.created_at >= since).count(),
    }
