from pathlib import Path
from urllib.parse import urlparse

from fastapi import Request
from fastapi.templating import Jinja2Templates

from config import REMOTE_IMAGE_HOSTS

BASE_DIR = Path(__file__).resolve().parent

# Páginas que se muestran sin cabecera ni pie
BARE_PATH_PREFIXES = ("/login", "/register", "/admin", "/account")

PLACEHOLDER_IMAGE = "/static/img/car-placeholder.svg"

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def is_bare_path(path: str, prefixes=BARE_PATH_PREFIXES) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


def is_allowed_image_url(url: str, hosts=None) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme == "https" and parsed.hostname in (hosts or REMOTE_IMAGE_HOSTS)


def car_image(url: str) -> str:
    if url and url.startswith("/static/"):
        return url
    return url if is_allowed_image_url(url) else PLACEHOLDER_IMAGE


def money(value) -> str:
    return f"{value:,.2f} €" if value is not None else "-"


templates.env.filters["car_image"] = car_image
templates.env.filters["money"] = money


def render(request: Request, name: str, context: dict = None, status_code: int = 200):
    """Renderiza una plantilla decidiendo si lleva cabecera y pie"""
    context = dict(context or {})
    context.setdefault("show_chrome", not is_bare_path(request.url.path))
    context.setdefault("current_user", None)
    return templates.TemplateResponse(request, name, context, status_code=status_code)
