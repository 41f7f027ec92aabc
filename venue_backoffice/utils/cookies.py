# venue_backoffice/utils/cookies.py
"""
Session cookie handling shared by the login routes and the session middleware.

Every write and every delete uses the same attributes, so a logout expires
exactly the cookies a login or a token refresh created.
"""
from urllib.parse import urlparse

from venue_backoffice.config import load_config

ACCESS_COOKIE = "sb_access_token"
REFRESH_COOKIE = "sb_refresh_token"


def get_cookie_settings() -> dict:
    parsed_url = urlparse(load_config().APP_URL)
    is_secure = parsed_url.scheme == "https"
    domain = parsed_url.hostname if parsed_url.hostname not in ("localhost", "127.0.0.1") else None
    return {
        "httponly": True,
        "secure": is_secure,
        "samesite": "lax",
        "domain": domain
    }


def set_auth_cookies(response, tokens: dict, remember_me: bool = False):
    settings = get_cookie_settings()
    access_max_age = 60 * 60 * 24 * 7 if remember_me else 3600
    refresh_max_age = 60 * 60 * 24 * 30

    response.set_cookie(ACCESS_COOKIE, tokens["access_token"], max_age=access_max_age, **settings)
    response.set_cookie(REFRESH_COOKIE, tokens["refresh_token"], max_age=refresh_max_age, **settings)


def clear_auth_cookies(response):
    settings = get_cookie_settings()
    response.delete_cookie(ACCESS_COOKIE, **settings)
    response.delete_cookie(REFRESH_COOKIE, **settings)
