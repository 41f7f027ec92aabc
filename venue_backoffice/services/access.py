"""
Authorization gate.

Decides, from an explicit session and its profile, whether a path group
renders, redirects or waits for the profile lookup. The decision table is
total over (PathGroup, Actor); nothing is cached between calls.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from venue_backoffice.database.models import UserRole
from venue_backoffice.schemas.profile import ProfileResponse
from venue_backoffice.services.errors import NotAuthorized

LOGIN_PATH = "/login"
ADMIN_HOME = "/admin"
MANAGER_HOME = "/manager"
PUBLIC_PLACEHOLDER = "/menu-placeholder"


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: str
    email: str = ""
    expires_at: Optional[int] = None


@dataclass(frozen=True)
class AuthState:
    session: Optional[Session] = None
    profile: Optional[ProfileResponse] = None
    loading: bool = False


class PathGroup(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    LOGIN = "login"
    ROOT = "root"
    PUBLIC = "public"


class Actor(str, Enum):
    ANONYMOUS = "anonymous"
    ADMIN = "admin"
    MANAGER = "manager"
    OTHER = "other"


class Layout(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    LOGIN_FORM = "login_form"
    FALLBACK = "fallback"
    PUBLIC = "public"


class DecisionKind(str, Enum):
    RENDER = "render"
    REDIRECT = "redirect"
    LOADING = "loading"


@dataclass(frozen=True)
class AccessDecision:
    kind: DecisionKind
    layout: Optional[Layout] = None
    location: Optional[str] = None

    @classmethod
    def render(cls, layout: Layout) -> "AccessDecision":
        return cls(DecisionKind.RENDER, layout=layout)

    @classmethod
    def redirect(cls, location: str) -> "AccessDecision":
        return cls(DecisionKind.REDIRECT, location=location)

    @property
    def is_redirect(self) -> bool:
        return self.kind == DecisionKind.REDIRECT


LOADING = AccessDecision(DecisionKind.LOADING)

_ACTOR_BY_ROLE = {
    UserRole.ADMIN: Actor.ADMIN,
    UserRole.MANAGER: Actor.MANAGER,
    UserRole.BARTENDER: Actor.OTHER,
}

DECISION_TABLE: Dict[Tuple[PathGroup, Actor], AccessDecision] = {
    (PathGroup.ADMIN, Actor.ANONYMOUS): AccessDecision.redirect(LOGIN_PATH),
    (PathGroup.ADMIN, Actor.ADMIN): AccessDecision.render(Layout.ADMIN),
    (PathGroup.ADMIN, Actor.MANAGER): AccessDecision.redirect(LOGIN_PATH),
    (PathGroup.ADMIN, Actor.OTHER): AccessDecision.redirect(LOGIN_PATH),

    (PathGroup.MANAGER, Actor.ANONYMOUS): AccessDecision.redirect(LOGIN_PATH),
    (PathGroup.MANAGER, Actor.ADMIN): AccessDecision.redirect(LOGIN_PATH),
    (PathGroup.MANAGER, Actor.MANAGER): AccessDecision.render(Layout.MANAGER),
    (PathGroup.MANAGER, Actor.OTHER): AccessDecision.redirect(LOGIN_PATH),

    (PathGroup.LOGIN, Actor.ANONYMOUS): AccessDecision.render(Layout.LOGIN_FORM),
    (PathGroup.LOGIN, Actor.ADMIN): AccessDecision.redirect(ADMIN_HOME),
    (PathGroup.LOGIN, Actor.MANAGER): AccessDecision.redirect(MANAGER_HOME),
    (PathGroup.LOGIN, Actor.OTHER): AccessDecision.render(Layout.FALLBACK),

    (PathGroup.ROOT, Actor.ANONYMOUS): AccessDecision.redirect(LOGIN_PATH),
    (PathGroup.ROOT, Actor.ADMIN): AccessDecision.redirect(ADMIN_HOME),
    (PathGroup.ROOT, Actor.MANAGER): AccessDecision.redirect(MANAGER_HOME),
    (PathGroup.ROOT, Actor.OTHER): AccessDecision.redirect(PUBLIC_PLACEHOLDER),

    (PathGroup.PUBLIC, Actor.ANONYMOUS): AccessDecision.render(Layout.PUBLIC),
    (PathGroup.PUBLIC, Actor.ADMIN): AccessDecision.render(Layout.PUBLIC),
    (PathGroup.PUBLIC, Actor.MANAGER): AccessDecision.render(Layout.PUBLIC),
    (PathGroup.PUBLIC, Actor.OTHER): AccessDecision.render(Layout.PUBLIC),
}

missing = [(g, a) for g in PathGroup for a in Actor if (g, a) not in DECISION_TABLE]
if missing:
    raise RuntimeError(f"Access decision table is incomplete: {missing}")
del missing


def classify_path(path: str) -> PathGroup:
    """Map a request path onto the group the gate reasons about."""
    if path == "/":
        return PathGroup.ROOT
    if path.rstrip("/") == LOGIN_PATH:
        return PathGroup.LOGIN
    for prefix, group in ((ADMIN_HOME, PathGroup.ADMIN), (MANAGER_HOME, PathGroup.MANAGER)):
        if path == prefix or path.startswith(prefix + "/"):
            return group
    return PathGroup.PUBLIC


def actor_for(state: AuthState) -> Actor:
    if state.session is None:
        return Actor.ANONYMOUS
    if state.profile is None:
        return Actor.OTHER
    return _ACTOR_BY_ROLE[state.profile.role]


def authorize(group: PathGroup, state: AuthState) -> AccessDecision:
    """Decide what a request for ``group`` gets under ``state``."""
    if state.loading and (state.session is None or state.profile is None):
        # Revalidating an established session keeps the last known profile
        return LOADING
    return DECISION_TABLE[(group, actor_for(state))]


def ensure_admin(actor: Optional[ProfileResponse]) -> ProfileResponse:
    if actor is None or actor.role != UserRole.ADMIN:
        raise NotAuthorized("Not authorized: admin access required")
    return actor


def ensure_manager(actor: Optional[ProfileResponse]) -> ProfileResponse:
    if actor is None or actor.role != UserRole.MANAGER:
        raise NotAuthorized("Not authorized: must be a manager")
    return actor


def ensure_venue_manager(actor: Optional[ProfileResponse], venue_id: str) -> ProfileResponse:
    """Caller must manage exactly ``venue_id``."""
    if actor is None or actor.role != UserRole.MANAGER or actor.venue_id != venue_id:
        raise NotAuthorized("Not authorized: must be manager of the specified venue")
    return actor
