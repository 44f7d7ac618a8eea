import pytest

from layout import BARE_PATH_PREFIXES, car_image, is_allowed_image_url, is_bare_path, PLACEHOLDER_IMAGE


@pytest.mark.parametrize("path", [
    "/login",
    "/register",
    "/admin",
    "/admin/bookings",
    "/account",
    "/account/profile",
])
def test_bare_paths(path):
    assert is_bare_path(path) is True


@pytest.mark.parametrize("path", ["/", "/cars", "/cars/123", "/about", "/rent/account"])
def test_paths_with_chrome(path):
    assert is_bare_path(path) is False


def test_prefix_match_is_plain_string_prefix():
    # "/loginx" empieza por "/login"
    assert is_bare_path("/loginx")


def test_custom_prefix_set():
    assert is_bare_path("/cars/1", prefixes=("/cars",))
    assert not is_bare_path("/account", prefixes=())


def test_default_prefixes():
    assert set(BARE_PATH_PREFIXES) == {"/login", "/register", "/admin", "/account"}


def test_image_allow_list():
    assert is_allowed_image_url("https://images.unsplash.com/photo-1")
    assert is_allowed_image_url("https://cdn.pixabay.com/a.jpg")
    assert not is_allowed_image_url("http://images.unsplash.com/photo-1")
    assert not is_allowed_image_url("https://evil.example.com/a.jpg")
    assert not is_allowed_image_url("")


def test_car_image_falls_back_to_placeholder():
    assert car_image("https://evil.example.com/a.jpg") == PLACEHOLDER_IMAGE
    assert car_image("") == PLACEHOLDER_IMAGE
    assert car_image("/static/img/logan.jpg") == "/static/img/logan.jpg"
    assert car_image("https://images.unsplash.com/x") == "https://images.unsplash.com/x"
