import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy.orm import Session

import auth
import crud
import models
import schemas
from config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALLOWED_ORIGINS,
    COOKIE_NAME,
    COOKIE_SECURE,
)
from database import get_db, init_db
from guard import GuardOutcome
from layout import BASE_DIR, render
from logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Aplicación iniciada")
    yield
    logger.info("Aplicación detenida")


setup_logging()

app = FastAPI(title="Car Rental", lifespan=lifespan)

app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api = APIRouter(prefix="/api")

# Rutas de autenticación
@api.post("/token", response_model=schemas.Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    user = auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        logger.warning("Inicio de sesión fallido para %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = auth.create_access_token(
        data={"sub": user.email}, expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    logger.info("Inicio de sesión: usuario=%s", user.id)
    return {"access_token": access_token, "token_type": "bearer"}

@api.post("/users/", response_model=schemas.User)
def create_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    try:
        return auth.register_user(db, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@api.get("/users/me/", response_model=schemas.User)
async def read_users_me(current_user: models.User = Depends(auth.get_current_user)):
    return current_user

@api.get("/users/", response_model=list[schemas.User])
def read_users(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_admin_user)
):
    """Lista los usuarios (solo administradores)"""
    return crud.get_users(db, skip=skip, limit=limit)

# Rutas para coches
@api.get("/cars/", response_model=list[schemas.Car])
def read_cars(
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    category: Optional[schemas.CarCategory] = None,
    db: Session = Depends(get_db)
):
    """Obtiene los coches, con filtro opcional por texto o categoría"""
    return crud.get_cars(
        db, skip=skip, limit=limit, search=search,
        category=category.value if category else None,
    )

@api.get("/cars/featured/", response_model=list[schemas.Car])
def read_featured_cars(db: Session = Depends(get_db)):
    """Coches mejor valorados"""
    return crud.get_featured_cars(db)

@api.get("/cars/{car_id}", response_model=schemas.Car)
def read_car(car_id: int, db: Session = Depends(get_db)):
    db_car = crud.get_car(db, car_id=car_id)
    if db_car is None:
        raise HTTPException(status_code=404, detail="Coche no encontrado")
    return db_car

@api.post("/cars/", response_model=schemas.Car)
def create_car(
    car: schemas.CarBase,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_admin_user)
):
    """Crea un coche (solo administradores)"""
    return crud.create_car(db=db, car=car)

@api.put("/cars/{car_id}", response_model=schemas.Car)
def update_car(
    car_id: int,
    car: schemas.CarBase,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_admin_user)
):
    """Actualiza un coche (solo administradores)"""
    if crud.get_car(db, car_id=car_id) is None:
        raise HTTPException(status_code=404, detail="Coche no encontrado")
    return crud.update_car(db=db, car_id=car_id, car=car)

@api.delete("/cars/{car_id}")
def delete_car(
    car_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_admin_user)
):
    """Elimina un coche (solo administradores)"""
    if crud.get_car(db, car_id=car_id) is None:
        raise HTTPException(status_code=404, detail="Coche no encontrado")
    crud.delete_car(db=db, car_id=car_id)
    return {"message": "Coche eliminado correctamente"}

# Rutas para reservas
@api.post("/bookings/", response_model=schemas.Booking)
def create_booking(
    booking: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """Crea una reserva para el usuario actual"""
    try:
        return crud.create_booking(db=db, booking=booking, user_id=current_user.id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@api.get("/bookings/", response_model=list[schemas.Booking])
def read_bookings(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_admin_user)
):
    """Todas las reservas, las más recientes primero (solo administradores)"""
    return crud.get_bookings(db, skip=skip, limit=limit)

@api.get("/bookings/me/", response_model=list[schemas.Booking])
def read_my_bookings(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return crud.get_user_bookings(db, user_id=current_user.id)

@api.get("/bookings/{booking_id}", response_model=schemas.Booking)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """Obtiene una reserva (solo el propietario o un administrador)"""
    db_booking = crud.get_booking(db, booking_id=booking_id)
    if db_booking is None:
        raise HTTPException(status_code=404, detail="Reserva no encontrada")
    if db_booking.user_id != current_user.id and current_user.role != "admin":
        raise HTTPException(status_code=403, detail="No tienes permiso para ver esta reserva")
    return db_booking

@api.patch("/bookings/{booking_id}/status", response_model=schemas.Booking)
def update_booking_status(
    booking_id: int,
    update: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_admin_user)
):
    """Cambia el estado o el estado de pago (solo administradores)"""
    if crud.get_booking(db, booking_id=booking_id) is None:
        raise HTTPException(status_code=404, detail="Reserva no encontrada")
    return crud.update_booking_status(db, booking_id=booking_id, update=update)

# Rutas para el dashboard
@api.get("/dashboard/stats/", response_model=schemas.DashboardStats)
def read_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_admin_user)
):
    return crud.get_dashboard_stats(db)

app.include_router(api)


# Rutas para el frontend
def _safe_redirect(target: Optional[str], default: str = "/account") -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return default

def _signed_in(response: RedirectResponse, user: models.User) -> RedirectResponse:
    token = auth.create_access_token(data={"sub": user.email})
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=COOKIE_SECURE,
    )
    return response

def protected_page(request: Request, db: Session, admin: bool = False):
    """Aplica la guardia; devuelve (usuario, None) o (None, respuesta alternativa)"""
    guard, destination = auth.guard_request(request, db)
    if guard.outcome is GuardOutcome.redirect:
        return None, RedirectResponse(destination, status_code=303)
    if guard.outcome is GuardOutcome.placeholder:
        return None, render(request, "auth_checking.html")
    if admin and guard.user.role != "admin":
        return None, render(
            request, "forbidden.html", {"current_user": guard.user}, status_code=403
        )
    return guard.user, None

@app.get("/", response_class=HTMLResponse)
async def home_page(
    request: Request,
    db: Session = Depends(get_db),
    current_user=Depends(auth.get_user_from_cookie)
):
    return render(request, "index.html", {
        "current_user": current_user,
        "cars": crud.get_featured_cars(db),
    })

@app.get("/about", response_class=HTMLResponse)
async def about_page(request: Request, current_user=Depends(auth.get_user_from_cookie)):
    return render(request, "about.html", {"current_user": current_user})

@app.get("/cars", response_class=HTMLResponse)
async def cars_page(
    request: Request,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user=Depends(auth.get_user_from_cookie)
):
    return render(request, "cars.html", {
        "current_user": current_user,
        "cars": crud.get_cars(db, search=q),
        "q": q or "",
    })

@app.get("/offers", response_class=HTMLResponse)
async def offers_page(
    request: Request,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user=Depends(auth.get_user_from_cookie)
):
    """Coches con descuento, filtrables por categoría"""
    categories = [c.value for c in schemas.CarCategory]
    if category not in categories:
        category = None
    return render(request, "offers.html", {
        "current_user": current_user,
        "cars": crud.get_offers(db, category=category),
        "category": category or "",
        "categories": categories,
    })

def _car_detail(request, db, car_id, current_user, error=None, form=None, status_code=200):
    car = crud.get_car(db, car_id=car_id)
    if car is None:
        return render(request, "not_found.html", {"current_user": current_user}, status_code=404)
    return render(request, "car_detail.html", {
        "current_user": current_user,
        "car": car,
        "error": error,
        "form": form or {},
    }, status_code=status_code)

@app.get("/cars/{car_id}", response_class=HTMLResponse)
async def car_detail_page(
    request: Request,
    car_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(auth.get_user_from_cookie)
):
    return _car_detail(request, db, car_id, current_user)

@app.post("/cars/{car_id}/book")
async def book_car(
    request: Request,
    car_id: int,
    start_date: str = Form(""),
    end_date: str = Form(""),
    db: Session = Depends(get_db),
    current_user=Depends(auth.get_user_from_cookie)
):
    if current_user is None:
        return RedirectResponse(auth.login_url(f"/cars/{car_id}"), status_code=303)

    form = {"start_date": start_date, "end_date": end_date}
    try:
        start, end = datetime.fromisoformat(start_date), datetime.fromisoformat(end_date)
    except ValueError:
        return _car_detail(
            request, db, car_id, current_user,
            error="Selecciona un periodo de alquiler válido", form=form, status_code=400,
        )

    booking = schemas.BookingCreate(car_id=car_id, start_date=start, end_date=end)
    try:
        crud.create_booking(db, booking=booking, user_id=current_user.id)
    except LookupError:
        return render(request, "not_found.html", {"current_user": current_user}, status_code=404)
    except ValueError as e:
        return _car_detail(request, db, car_id, current_user, error=str(e), form=form, status_code=400)
    return RedirectResponse("/account/bookings", status_code=303)

@app.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, redirect: Optional[str] = None):
    return render(request, "login.html", {"redirect": _safe_redirect(redirect)})

@app.post("/login")
async def login_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    redirect: Optional[str] = Form(None),
    db: Session = Depends(get_db)
):
    user = auth.authenticate_user(db, email, password)
    if not user:
        logger.warning("Inicio de sesión fallido para %s", email)
        return render(request, "login.html", {
            "redirect": _safe_redirect(redirect),
            "email": email,
            "error": "Email o contraseña incorrectos",
        }, status_code=400)
    logger.info("Inicio de sesión: usuario=%s", user.id)
    return _signed_in(RedirectResponse(_safe_redirect(redirect), status_code=303), user)

@app.get("/register", response_class=HTMLResponse)
async def register_page(request: Request):
    return render(request, "register.html", {"form": {}})

@app.post("/register")
async def register_submit(
    request: Request,
    first_name: str = Form(""),
    last_name: str = Form(""),
    email: str = Form(""),
    phone_number: str = Form(""),
    driving_license: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    db: Session = Depends(get_db)
):
    form = {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "phone_number": phone_number,
        "driving_license": driving_license,
    }
    error = None
    if password != confirm_password:
        error = "Las contraseñas no coinciden"
    elif not driving_license:
        error = "El permiso de conducir es obligatorio"
    else:
        try:
            user = auth.register_user(db, schemas.UserCreate(password=password, **form))
        except ValidationError as e:
            error = "Datos no válidos: " + ", ".join(str(err["loc"][-1]) for err in e.errors())
        except ValueError as e:
            error = str(e)
    if error:
        return render(request, "register.html", {"form": form, "error": error}, status_code=400)
    return _signed_in(RedirectResponse("/account", status_code=303), user)

@app.post("/logout")
async def logout():
    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(COOKIE_NAME)
    return response

@app.get("/account", response_class=HTMLResponse)
async def account_page(request: Request, db: Session = Depends(get_db)):
    user, response = protected_page(request, db)
    if response:
        return response
    return render(request, "account.html", {"current_user": user})

@app.get("/account/bookings", response_class=HTMLResponse)
async def account_bookings_page(request: Request, db: Session = Depends(get_db)):
    user, response = protected_page(request, db)
    if response:
        return response
    return render(request, "account_bookings.html", {
        "current_user": user,
        "bookings": crud.get_user_bookings(db, user_id=user.id),
    })

@app.get("/admin", response_class=HTMLResponse)
async def admin_dashboard_page(request: Request, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    return render(request, "admin/dashboard.html", {
        "current_user": user,
        "stats": crud.get_dashboard_stats(db),
    })

def _admin_cars_context(user, db, q=None, category=None):
    return {
        "current_user": user,
        "cars": crud.get_cars_by_name(db, search=q, category=category),
        "q": q or "",
        "category": category or "",
        "categories": [c.value for c in schemas.CarCategory],
    }

@app.get("/admin/cars", response_class=HTMLResponse)
async def admin_cars_page(
    request: Request,
    q: Optional[str] = None,
    category: Optional[str] = None,
    db: Session = Depends(get_db)
):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    if category not in [c.value for c in schemas.CarCategory]:
        category = None
    return render(request, "admin/cars.html", _admin_cars_context(user, db, q=q, category=category))

CAR_FORM_FIELDS = (
    "name", "brand", "model", "year", "color", "price_per_day", "original_price_per_day",
    "price_per_week", "price_per_month", "fuel_type", "transmission", "seats", "doors",
    "available_from", "available_to", "features", "image_url", "rating", "location",
    "description", "category",
)

def _car_form_values(car: models.Car) -> dict:
    values = {field: getattr(car, field) for field in CAR_FORM_FIELDS}
    values["original_price_per_day"] = car.original_price_per_day or ""
    values["features"] = "\n".join(car.features or [])
    for field in ("available_from", "available_to"):
        values[field] = getattr(car, field).strftime("%Y-%m-%dT%H:%M") if getattr(car, field) else ""
    return values

def _car_from_form(form: dict) -> schemas.CarBase:
    """Convierte el formulario del panel en un CarBase; lanza ValueError si no es válido"""
    data = {field: form.get(field, "").strip() for field in CAR_FORM_FIELDS}
    data["original_price_per_day"] = data["original_price_per_day"] or None
    data["features"] = [line.strip() for line in data["features"].splitlines() if line.strip()]
    for field in ("available_from", "available_to"):
        try:
            data[field] = datetime.fromisoformat(data[field])
        except ValueError:
            raise ValueError(f"Fecha no válida: {field}")
    try:
        return schemas.CarBase(**data)
    except ValidationError as e:
        raise ValueError("Datos no válidos: " + ", ".join(str(err["loc"][-1]) for err in e.errors()))

def _car_form(request, user, form, car=None, error=None, status_code=200):
    return render(request, "admin/car_form.html", {
        "current_user": user,
        "car": car,
        "form": form,
        "error": error,
        "fuel_types": [f.value for f in schemas.FuelType],
        "transmissions": [t.value for t in schemas.Transmission],
        "categories": [c.value for c in schemas.CarCategory],
    }, status_code=status_code)

@app.get("/admin/cars/new", response_class=HTMLResponse)
async def admin_new_car_page(request: Request, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    return _car_form(request, user, {})

@app.post("/admin/cars/new")
async def admin_create_car(request: Request, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    form = dict(await request.form())
    try:
        car = _car_from_form(form)
    except ValueError as e:
        return _car_form(request, user, form, error=str(e), status_code=400)
    crud.create_car(db, car=car)
    return RedirectResponse("/admin/cars", status_code=303)

@app.get("/admin/cars/{car_id}/edit", response_class=HTMLResponse)
async def admin_edit_car_page(request: Request, car_id: int, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    car = crud.get_car(db, car_id=car_id)
    if car is None:
        return render(request, "not_found.html", {"current_user": user}, status_code=404)
    return _car_form(request, user, _car_form_values(car), car=car)

@app.post("/admin/cars/{car_id}/edit")
async def admin_update_car(request: Request, car_id: int, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    car = crud.get_car(db, car_id=car_id)
    if car is None:
        return render(request, "not_found.html", {"current_user": user}, status_code=404)
    form = dict(await request.form())
    try:
        update = _car_from_form(form)
    except ValueError as e:
        return _car_form(request, user, form, car=car, error=str(e), status_code=400)
    crud.update_car(db, car_id=car_id, car=update)
    return RedirectResponse("/admin/cars", status_code=303)

@app.post("/admin/cars/{car_id}/delete")
async def admin_delete_car(request: Request, car_id: int, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    if crud.get_car(db, car_id=car_id) is None:
        return render(request, "not_found.html", {"current_user": user}, status_code=404)
    crud.delete_car(db, car_id=car_id)
    return RedirectResponse("/admin/cars", status_code=303)

def _admin_bookings(request, user, db, error=None, status_code=200):
    return render(request, "admin/bookings.html", {
        "current_user": user,
        "bookings": crud.get_bookings(db),
        "statuses": [s.value for s in schemas.BookingStatus],
        "payment_statuses": [s.value for s in schemas.PaymentStatus],
        "error": error,
    }, status_code=status_code)

@app.get("/admin/bookings", response_class=HTMLResponse)
async def admin_bookings_page(request: Request, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    return _admin_bookings(request, user, db)

@app.post("/admin/bookings/{booking_id}/status")
async def admin_update_booking_status(
    request: Request,
    booking_id: int,
    status_value: str = Form(..., alias="status"),
    payment_status: str = Form(...),
    db: Session = Depends(get_db)
):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    if crud.get_booking(db, booking_id=booking_id) is None:
        return render(request, "not_found.html", {"current_user": user}, status_code=404)
    try:
        update = schemas.BookingStatusUpdate(status=status_value, payment_status=payment_status)
    except ValidationError:
        return _admin_bookings(request, user, db, error="Estado no válido", status_code=400)
    crud.update_booking_status(db, booking_id=booking_id, update=update)
    return RedirectResponse("/admin/bookings", status_code=303)

@app.get("/admin/users", response_class=HTMLResponse)
async def admin_users_page(request: Request, db: Session = Depends(get_db)):
    user, response = protected_page(request, db, admin=True)
    if response:
        return response
    return render(request, "admin/users.html", {
        "current_user": user,
        "users": crud.get_users(db),
    })

# Configuración para producción
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
