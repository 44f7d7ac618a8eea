from enum import Enum
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

class FuelType(str, Enum):
    gasoline = "gasoline"
    diesel = "diesel"
    electric = "electric"
    hybrid = "hybrid"

class Transmission(str, Enum):
    manual = "manual"
    automatic = "automatic"

class CarCategory(str, Enum):
    economy = "economy"
    compact = "compact"
    midsize = "midsize"
    luxury = "luxury"
    suv = "suv"
    van = "van"

class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"

class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"

# Usuarios
class UserBase(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    phone_number: str = ""
    driving_license: str = ""

class UserCreate(UserBase):
    password: str = Field(..., min_length=6)

class User(UserBase):
    id: int
    role: str
    bookings: Optional[List[int]] = None

    model_config = ConfigDict(from_attributes=True)

class Token(BaseModel):
    access_token: str
    token_type: str

# Coches
class CarBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str
    brand: str
    model: str
    year: int
    color: str = ""
    price_per_day: float = Field(..., ge=0)
    original_price_per_day: Optional[float] = None
    price_per_week: float = Field(..., ge=0)
    price_per_month: float = Field(..., ge=0)
    fuel_type: FuelType
    transmission: Transmission
    seats: int
    doors: int
    available_from: datetime
    available_to: datetime
    features: List[str] = []
    image_url: str = ""
    rating: float = 0
    location: str = ""
    description: str = ""
    category: CarCategory

class Car(CarBase):
    id: int

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

# Reservas
class BookingCreate(BaseModel):
    car_id: int
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date")
    @classmethod
    def as_naive_utc(cls, value: datetime) -> datetime:
        # Las fechas se guardan en UTC sin zona, como models._now
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

class BookingStatusUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None

class Booking(BaseModel):
    id: int
    car_id: Optional[int]
    user_id: int
    car_name: Optional[str] = None
    car_image_url: Optional[str] = None
    start_date: datetime
    end_date: datetime
    number_of_days: int
    total_price: float
    status: BookingStatus
    payment_status: PaymentStatus
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class DashboardStats(BaseModel):
    total_cars: int
    total_users: int
    total_bookings: int
    bookings_by_status: Dict[str, int]
    cars_by_category: Dict[str, int]
    revenue: float
    bookings_last_30_days: int
