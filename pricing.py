import math
from datetime import datetime, timedelta

SECONDS_PER_DAY = timedelta(days=1).total_seconds()


def rental_days(start: datetime, end: datetime) -> int:
    """Días facturables entre dos fechas; cualquier fracción cuenta como día completo"""
    if end <= start:
        raise ValueError("La fecha de fin debe ser posterior a la fecha de inicio")
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def total_price(price_per_day: float, start: datetime, end: datetime) -> float:
    return round(rental_days(start, end) * price_per_day, 2)
