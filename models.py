from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from database import Base


def _now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone_number = Column(String(20))
    driving_license = Column(String(30))
    hashed_password = Column(String(200))
    role = Column(String(20), default="customer")
    created_at = Column(DateTime, default=_now)

    booking_records = relationship("Booking", back_populates="user", order_by="Booking.id")

    @property
    def bookings(self):
        # Referencia desnormalizada: solo los IDs
        return [booking.id for booking in self.booking_records]

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

class Car(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    brand = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer)
    color = Column(String(30))
    price_per_day = Column(Float, nullable=False)
    original_price_per_day = Column(Float, nullable=True)
    price_per_week = Column(Float)
    price_per_month = Column(Float)
    fuel_type = Column(String(20))
    transmission = Column(String(20))
    seats = Column(Integer)
    doors = Column(Integer)
    available_from = Column(DateTime)
    available_to = Column(DateTime)
    features = Column(JSON, default=list)
    image_url = Column(String(500), default="")
    rating = Column(Float, default=0)
    location = Column(String(100))
    description = Column(Text, default="")
    category = Column(String(20), index=True)

    bookings = relationship("Booking", back_populates="car")

    @property
    def discount_percent(self):
        if self.original_price_per_day and self.original_price_per_day > self.price_per_day:
            return round(100 * (1 - self.price_per_day / self.original_price_per_day))
        return None

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    car_id = Column(Integer, ForeignKey("cars.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    car_name = Column(String(100))
    car_image_url = Column(String(500), default="")
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    number_of_days = Column(Integer, nullable=False)
    total_price = Column(Float, nullable=False)
    status = Column(String(20), default="pending", index=True)
    payment_status = Column(String(20), default="pending")
    created_at = Column(DateTime, default=_now, index=True)

    car = relationship("Car", back_populates="bookings")
    user = relationship("User", back_populates="booking_records")
