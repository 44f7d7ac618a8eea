import os

# Configuración de autenticación
SECRET_KEY = os.getenv("SECRET_KEY", "cambiar_esta_clave_en_produccion")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
COOKIE_NAME = "access_token"
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() in ("1", "true", "yes")

LOGIN_PATH = "/login"


def _split(value: str):
    return [item.strip() for item in value.split(",") if item.strip()]


# Usuarios con rol de administrador
ADMIN_EMAILS = {email.lower() for email in _split(os.getenv("ADMIN_EMAILS", ""))}

# Hosts permitidos para imágenes remotas
REMOTE_IMAGE_HOSTS = _split(
    os.getenv(
        "REMOTE_IMAGE_HOSTS",
        "images.unsplash.com,cdn.pixabay.com,firebasestorage.googleapis.com",
    )
)

ALLOWED_ORIGINS = _split(os.getenv("ALLOWED_ORIGINS", "*"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
