from datetime import datetime, timezone
from fastapi import Request, Depends
from jose import jwt, jwk
from jose.exceptions import JWTError
from typing import Optional
import requests
import logging

from venue_backoffice.config import load_config
from venue_backoffice.schemas.profile import ProfileResponse
from venue_backoffice.services.access import Session, ensure_admin, ensure_manager
from venue_backoffice.services.errors import NotAuthenticated, NotAuthorized
from venue_backoffice.services.provisioning import get_profile

# JWKS cache
_jwks_cache: Optional[dict] = None
_jwks_cache_time: Optional[datetime] = None
JWKS_CACHE_TTL = 300  # seconds (5 minutes)


def get_jwks() -> dict:
    """Fetch JWKS keys with caching."""
    global _jwks_cache, _jwks_cache_time

    now = datetime.now()
    if _jwks_cache is None or (_jwks_cache_time and (now - _jwks_cache_time).total_seconds() > JWKS_CACHE_TTL):
        try:
            config = load_config()
            jwks_url = f"{config.SUPABASE_URL}/auth/v1/.well-known/jwks.json"
            resp = requests.get(jwks_url, timeout=10)
            resp.raise_for_status()
            new_jwks = resp.json()

            if _jwks_cache and _jwks_cache != new_jwks:
                old_kids = [k.get('kid') for k in _jwks_cache.get('keys', [])]
                new_kids = [k.get('kid') for k in new_jwks.get('keys', [])]
                logging.info(f"JWKS keys updated: {old_kids} -> {new_kids}")
            else:
                logging.info("JWKS cache updated")

            _jwks_cache = new_jwks
            _jwks_cache_time = now
        except Exception as e:
            logging.error(f"Failed to fetch JWKS: {e}")
            if _jwks_cache is None:
                raise

    return _jwks_cache


def decode_supabase_jwt(token: str) -> Optional[dict]:
    """Decode Supabase JWT using ES256 with public key (JWKS)."""
    try:
        headers = jwt.get_unverified_header(token)
        kid = headers.get("kid")
        alg = headers.get("alg", "ES256")

        if alg != "ES256":
            logging.error(f"Unsupported JWT alg: {alg}. Only ES256 is allowed.")
            return None

        keys = get_jwks().get("keys", [])
        if not keys:
            logging.error("No JWKS keys available")
            return None

        key_data = next((k for k in keys if k.get("kid") == kid), None)
        if not key_data:
            logging.error(f"No key found for kid: {kid}")
            return None

        public_key = jwk.construct(key_data)
        return jwt.decode(
            token,
            public_key,
            algorithms=["ES256"],
            options={"verify_aud": False}
        )

    except JWTError as e:
        logging.error(f"JWT decode error: {e}")
        return None
    except Exception as e:
        logging.error(f"Unexpected JWT error: {e}")
        return None


def refresh_supabase_token(refresh_token: str) -> Optional[dict]:
    """Refresh access/refresh tokens using Supabase API."""
    try:
        config = load_config()
        url = f"{config.SUPABASE_URL}/auth/v1/token?grant_type=refresh_token"
        headers = {
            "apikey": config.SUPABASE_ANON_KEY,
            "Content-Type": "application/json"
        }

        response = requests.post(url, headers=headers, json={"refresh_token": refresh_token}, timeout=10)
        response.raise_for_status()
        data = response.json()

        return {
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token", refresh_token),
            "expires_at": data.get("expires_at")
        }
    except Exception as e:
        logging.error(f"Token refresh failed: {e}")
        return None


def session_from_payload(access_token: str, payload: Optional[dict]) -> Optional[Session]:
    """Build a Session from a decoded JWT payload, None when missing or expired."""
    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    exp = payload.get("exp")
    if exp and datetime.fromtimestamp(exp, tz=timezone.utc) <= datetime.now(tz=timezone.utc):
        logging.warning(f"Token expired for user {user_id}")
        return None

    return Session(
        access_token=access_token,
        user_id=str(user_id),
        email=payload.get("email", ""),
        expires_at=exp,
    )


def get_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


def get_backend(request: Request):
    return request.app.state.backend


def get_database(request: Request):
    return request.app.state.database


def get_current_profile(request: Request) -> ProfileResponse:
    """Profile resolved by the session middleware for this request."""
    if getattr(request.state, "session", None) is None:
        raise NotAuthenticated("Not authenticated")
    profile = getattr(request.state, "profile", None)
    if profile is None:
        raise NotAuthorized("User profile not found")
    return profile


def get_admin_user(current_profile: ProfileResponse = Depends(get_current_profile)) -> ProfileResponse:
    return ensure_admin(current_profile)


def get_manager_user(current_profile: ProfileResponse = Depends(get_current_profile)) -> ProfileResponse:
    manager = ensure_manager(current_profile)
    if not manager.venue_id:
        raise NotAuthorized("Not authorized: manager has no venue assigned")
    return manager


def get_function_caller(request: Request) -> ProfileResponse:
    """
    Caller of a privileged function, authenticated from the bearer token.

    Independent of the page middleware: the functions re-check the caller's
    role and venue themselves.
    """
    token = get_bearer_token(request)
    if not token:
        raise NotAuthenticated("Missing Authorization header")

    session = session_from_payload(token, request.app.state.token_decoder(token))
    if session is None:
        raise NotAuthenticated("Error getting user or user not authenticated")

    profile = get_profile(request.app.state.backend, session.user_id)
    if profile is None:
        raise NotAuthorized("Error getting user profile or profile not found")
    return profile
