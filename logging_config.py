"""
Configuración de logging de la aplicación
"""
import logging
import re
import sys

from config import LOG_LEVEL


class SensitiveDataFilter(logging.Filter):
    """Enmascara contraseñas y tokens en los mensajes de log"""

    SENSITIVE_PATTERNS = [
        (r'password["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'password=***'),
        (r'token["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'token=***'),
        (r'secret["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'secret=***'),
        (r'Bearer\s+([^\s"]+)', r'Bearer ***'),
    ]

    def _mask(self, text: str) -> str:
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._mask(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self._mask(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


def setup_logging(level: str = LOG_LEVEL):
    """Configura el logger raíz una sola vez"""
    root = logging.getLogger()
    if any(getattr(h, "_rental_handler", False) for h in root.handlers):
        root.setLevel(level.upper())
        return

    handler = logging.StreamHandler(sys.stdout)
    handler._rental_handler = True
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    handler.addFilter(SensitiveDataFilter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    # Silenciar librerías ruidosas
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
