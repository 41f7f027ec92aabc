import copy
import os
import time
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "tests-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "tests-service-key")
os.environ.setdefault("APP_URL", "http://localhost:8000")

from venue_backoffice.config import load_config
from venue_backoffice.database.models import STAFF_PROFILES_RPC
from venue_backoffice.main import create_app

load_config.cache_clear()


class InMemoryBackend:
    """
    Stand-in for SupabaseClient backed by dictionaries.

    Creating an account also creates a default bartender profile, like the
    on_auth_user_created trigger; deleting one removes its profile, and
    deleting a venue clears venue_id on its profiles like the FK does. Every
    call is recorded in ``calls`` as ``(method, target)`` and any call can be
    made to fail with ``fail(method, target, message)``.
    """

    def __init__(self, profile_trigger: bool = True):
        self.profile_trigger = profile_trigger
        self.accounts = {}
        self.tables = {}
        self.storage = {}
        self.calls = []
        self.failures = {}
        self.signed_out = 0

    def fail(self, method, target=None, message="DB_ERROR"):
        self.failures[(method, target)] = message

    def _call(self, method, target=None):
        self.calls.append((method, target))
        message = self.failures.get((method, target))
        if message:
            raise RuntimeError(message)

    def calls_to(self, method, target=None):
        return [call for call in self.calls if call == (method, target)]

    def rows(self, table):
        return self.tables.setdefault(table, [])

    # Seeding helpers, not recorded

    def add_venue(self, name="Test Venue", **fields):
        venue = {
            "id": fields.pop("id", str(uuid.uuid4())),
            "name": name,
            "address": None,
            "city": "Belgrade",
            "state": "Serbia",
            "logo_url": None,
            "manager_id": None,
            "created_at": _timestamp(),
        }
        venue.update(fields)
        self.rows("venues").append(venue)
        return venue

    def add_user(self, email, role, venue_id=None, password="password1", full_name=None):
        account_id = str(uuid.uuid4())
        self.accounts[account_id] = {"email": email, "password": password, "banned": False, "metadata": {}}
        self.rows("profiles").append({
            "id": account_id,
            "role": role,
            "venue_id": venue_id,
            "full_name": full_name,
            "phone_number": None,
            "created_at": _timestamp(),
            "updated_at": _timestamp(),
        })
        return account_id

    def profile(self, account_id):
        return next((row for row in self.rows("profiles") if row["id"] == account_id), None)

    # Identity store

    def create_account(self, email, password, user_metadata=None):
        self._call("create_account")
        if self.find_account_id(email, record=False):
            raise RuntimeError("A user with this email address has already been registered")
        account_id = str(uuid.uuid4())
        self.accounts[account_id] = {
            "email": email, "password": password, "banned": False, "metadata": user_metadata or {},
        }
        if self.profile_trigger:
            self.rows("profiles").append({
                "id": account_id,
                "role": "bartender",
                "venue_id": None,
                "full_name": (user_metadata or {}).get("full_name"),
                "phone_number": None,
                "created_at": _timestamp(),
                "updated_at": _timestamp(),
            })
        return account_id

    def delete_account(self, account_id):
        self._call("delete_account")
        if account_id not in self.accounts:
            raise RuntimeError("User not found")
        del self.accounts[account_id]
        self.tables["profiles"] = [row for row in self.rows("profiles") if row["id"] != account_id]

    def set_account_disabled(self, account_id, disabled):
        self._call("set_account_disabled")
        if account_id not in self.accounts:
            raise RuntimeError("User not found")
        self.accounts[account_id]["banned"] = disabled

    def account_exists(self, account_id):
        self._call("account_exists")
        return account_id in self.accounts

    def find_account_id(self, email, record=True):
        if record:
            self._call("find_account_id")
        for account_id, account in self.accounts.items():
            if account["email"].lower() == email.lower():
                return account_id
        return None

    def sign_in(self, email, password):
        self._call("sign_in")
        account_id = self.find_account_id(email, record=False)
        if account_id is None or self.accounts[account_id]["password"] != password:
            raise RuntimeError("Invalid login credentials")
        return {
            "access_token": token_for(account_id),
            "refresh_token": f"refresh:{account_id}",
            "expires_at": int(time.time()) + 3600,
        }

    def sign_out(self):
        self._call("sign_out")
        self.signed_out += 1

    # Relational store

    def select(self, table, filters=None, order=None, columns="*"):
        self._call("select", table)
        matches = [copy.deepcopy(row) for row in self.rows(table) if _matches(row, filters)]
        for column, ascending in reversed(list(order or [])):
            matches.sort(key=lambda row: (row.get(column) is None, 0 if row.get(column) is None else row.get(column)),
                         reverse=not ascending)
        return matches

    def insert(self, table, row):
        self._call("insert", table)
        stored = {"id": str(uuid.uuid4()), "created_at": _timestamp(), **copy.deepcopy(row)}
        self.rows(table).append(stored)
        return copy.deepcopy(stored)

    def upsert(self, table, row):
        self._call("upsert", table)
        for existing in self.rows(table):
            if existing["id"] == row["id"]:
                existing.update(copy.deepcopy(row))
                return copy.deepcopy(existing)
        stored = {"created_at": _timestamp(), **copy.deepcopy(row)}
        self.rows(table).append(stored)
        return copy.deepcopy(stored)

    def update(self, table, values, filters):
        self._call("update", table)
        if not filters:
            raise ValueError(f"Refusing to update every row of {table}")
        updated = []
        for row in self.rows(table):
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                updated.append(copy.deepcopy(row))
        return updated

    def delete(self, table, filters):
        self._call("delete", table)
        if not filters:
            raise ValueError(f"Refusing to delete every row of {table}")
        removed = [row for row in self.rows(table) if _matches(row, filters)]
        self.tables[table] = [row for row in self.rows(table) if not _matches(row, filters)]
        if table == "venues":
            removed_ids = {row["id"] for row in removed}
            for profile in self.rows("profiles"):
                if profile.get("venue_id") in removed_ids:
                    profile["venue_id"] = None
        return removed

    def rpc(self, name, params=None):
        self._call("rpc", name)
        if name != STAFF_PROFILES_RPC:
            raise RuntimeError(f"Unknown function {name}")
        return [
            {**copy.deepcopy(row), "email": self.accounts.get(row["id"], {}).get("email")}
            for row in self.rows("profiles")
        ]

    def ping(self):
        self._call("ping")

    # Object storage

    def upload(self, bucket, path, data, content_type=None):
        self._call("upload", bucket)
        self.storage[(bucket, path)] = data
        return path

    def public_url(self, bucket, path):
        return f"https://project.supabase.test/storage/v1/object/public/{bucket}/{path}"

    def remove(self, bucket, paths):
        self._call("remove", bucket)
        for path in paths:
            self.storage.pop((bucket, path), None)


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


def _matches(row, filters):
    return all(row.get(column) == value for column, value in (filters or {}).items())


def token_for(account_id):
    return f"token:{account_id}"


def decode_test_token(token):
    if not token or not token.startswith("token:"):
        return None
    return {"sub": token.split(":", 1)[1], "email": "", "exp": int(time.time()) + 3600}


def auth_header(account_id):
    return {"Authorization": f"Bearer {token_for(account_id)}"}


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def app(backend):
    return create_app(backend=backend, token_decoder=decode_test_token, token_refresher=lambda _: None)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def venue(backend):
    return backend.add_venue("Kafana Mostar", city="Mostar", state="Bosnia and Herzegovina")


@pytest.fixture
def admin_id(backend):
    return backend.add_user("admin@example.com", "admin", full_name="Ada Admin")


@pytest.fixture
def manager_id(backend, venue):
    manager = backend.add_user("manager@example.com", "manager", venue_id=venue["id"], full_name="Mira Manager")
    for row in backend.rows("venues"):
        if row["id"] == venue["id"]:
            row["manager_id"] = manager
    return manager


@pytest.fixture
def bartender_id(backend, venue):
    return backend.add_user("bartender@example.com", "bartender", venue_id=venue["id"])
