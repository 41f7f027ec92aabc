from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from datetime import datetime, timezone
from typing import Optional, Tuple
import logging

from venue_backoffice.services.access import (
    AuthState,
    PathGroup,
    Session,
    authorize,
    classify_path,
)
from venue_backoffice.services.provisioning import get_profile
from venue_backoffice.utils.auth import session_from_payload
from venue_backoffice.utils.cookies import ACCESS_COOKIE, REFRESH_COOKIE, set_auth_cookies


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """
    Resolves the Supabase session and profile for every gated path and
    applies the access decision table: redirect, or attach the session and
    profile to ``request.state`` and continue.
    """

    # Paths that never go through the gate
    SKIP_AUTH_PATHS = {"/health", "/logout", "/favicon.ico"}

    # Privileged functions authenticate their caller themselves
    SKIP_AUTH_PREFIXES = {"/static", "/functions/"}

    def should_skip_auth(self, request: Request) -> bool:
        """Check if request should skip authentication"""
        path = request.url.path

        if path in self.SKIP_AUTH_PATHS:
            return True

        if any(path.startswith(prefix) for prefix in self.SKIP_AUTH_PREFIXES):
            return True

        if request.method == "HEAD":
            return True

        # Credentials are being submitted
        if request.method == "POST" and classify_path(path) == PathGroup.LOGIN:
            return True

        return False

    def get_tokens_from_request(self, request: Request) -> Tuple[Optional[str], Optional[str]]:
        """Extract access and refresh tokens from request"""
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            access_token = auth_header.split(" ", 1)[1]
            refresh_token = request.cookies.get(REFRESH_COOKIE)
            return access_token, refresh_token

        access_token = request.cookies.get(ACCESS_COOKIE)
        refresh_token = request.cookies.get(REFRESH_COOKIE)
        return access_token, refresh_token

    def should_refresh_token(self, session: Session) -> bool:
        """Check if token should be refreshed (expires within 5 minutes)"""
        if not session.expires_at:
            return False

        exp_time = datetime.fromtimestamp(session.expires_at, tz=timezone.utc)
        time_until_expiry = (exp_time - datetime.now(tz=timezone.utc)).total_seconds()
        return time_until_expiry < 300

    def set_token_cookies(self, response, tokens: dict):
        """Rewrite the session cookies with the attributes login and logout use"""
        set_auth_cookies(response, tokens)

    def _session_from_token(self, request: Request, access_token: str) -> Optional[Session]:
        try:
            payload = request.app.state.token_decoder(access_token)
        except Exception as e:
            logging.error(f"Access token validation failed: {e}")
            return None
        return session_from_payload(access_token, payload)

    def _refresh(self, request: Request, refresh_token: str) -> Tuple[Optional[Session], Optional[dict]]:
        new_tokens = request.app.state.token_refresher(refresh_token)
        if not new_tokens:
            logging.error("Token refresh failed")
            return None, None
        session = self._session_from_token(request, new_tokens["access_token"])
        if session is None:
            logging.error("Refreshed token validation failed")
            return None, None
        return session, new_tokens

    def resolve_session(self, request: Request) -> Tuple[Optional[Session], Optional[dict]]:
        """Validated session plus any refreshed tokens to hand back as cookies"""
        access_token, refresh_token = self.get_tokens_from_request(request)
        if not access_token and not refresh_token:
            return None, None

        session = self._session_from_token(request, access_token) if access_token else None

        if session and refresh_token and self.should_refresh_token(session):
            logging.info(f"Proactively refreshing token for user {session.user_id}")
            refreshed, new_tokens = self._refresh(request, refresh_token)
            if refreshed:
                return refreshed, new_tokens
            return session, None

        if session is None and refresh_token:
            logging.info("Access token invalid, attempting refresh")
            return self._refresh(request, refresh_token)

        return session, None

    def resolve_auth_state(self, request: Request) -> Tuple[AuthState, Optional[dict]]:
        session, new_tokens = self.resolve_session(request)
        if session is None:
            return AuthState(), None

        try:
            profile = get_profile(request.app.state.backend, session.user_id)
        except Exception as e:
            logging.error(f"Failed to get user profile for {session.user_id}: {e}")
            profile = None
        if profile is None:
            logging.warning(f"No profile for user {session.user_id}")

        return AuthState(session=session, profile=profile), new_tokens

    async def dispatch(self, request: Request, call_next):
        """Main middleware dispatch method"""
        if self.should_skip_auth(request):
            return await call_next(request)

        group = classify_path(request.url.path)
        state, new_tokens = self.resolve_auth_state(request)
        decision = authorize(group, state)

        if decision.is_redirect:
            logging.info(f"Redirecting {request.url.path} to {decision.location}")
            response = RedirectResponse(url=decision.location, status_code=303)
            if new_tokens:
                self.set_token_cookies(response, new_tokens)
            return response

        request.state.session = state.session
        request.state.profile = state.profile
        request.state.access_decision = decision

        response = await call_next(request)

        if new_tokens:
            try:
                self.set_token_cookies(response, new_tokens)
                logging.info(f"Updated token cookies for user {state.session.user_id}")
            except Exception as e:
                logging.error(f"Failed to set token cookies: {e}")

        return response
