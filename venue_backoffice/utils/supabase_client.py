import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from supabase import AuthApiError, create_client, Client

from venue_backoffice.config import Config
from venue_backoffice.database.models import TABLES

# (column, ascending)
Order = Sequence[Tuple[str, bool]]

# GoTrue has no "disabled" flag; an effectively permanent ban does the job
BAN_FOREVER = "876000h"


class SupabaseClient:
    """
    Access to the hosted Supabase project: identity store, tables and storage.

    Clients are created on first use. Every method lets the underlying
    supabase/postgrest/gotrue exception propagate; callers decide how to
    classify it.
    """

    def __init__(self, url: str, service_key: str, anon_key: str):
        self._url = url
        self._service_key = service_key
        self._anon_key = anon_key
        self._admin: Optional[Client] = None
        self._public: Optional[Client] = None

    @classmethod
    def from_config(cls, config: Config) -> "SupabaseClient":
        return cls(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY, config.SUPABASE_ANON_KEY)

    @property
    def client(self) -> Client:
        """Service-role client, bypasses row level security"""
        if self._admin is None:
            self._admin = create_client(self._url, self._service_key)
        return self._admin

    @property
    def public_client(self) -> Client:
        """Anon-key client, used for password sign-in"""
        if self._public is None:
            self._public = create_client(self._url, self._anon_key)
        return self._public

    # Identity store

    def create_account(self, email: str, password: str, user_metadata: Optional[Dict[str, Any]] = None) -> str:
        """Create a pre-confirmed account and return its id"""
        attributes = {
            "email": email,
            "password": password,
            "email_confirm": True,
        }
        if user_metadata:
            attributes["user_metadata"] = user_metadata
        response = self.client.auth.admin.create_user(attributes)
        if not response.user:
            raise RuntimeError("Failed to create user.")
        return response.user.id

    def delete_account(self, account_id: str) -> None:
        self.client.auth.admin.delete_user(account_id)

    def set_account_disabled(self, account_id: str, disabled: bool) -> None:
        self.client.auth.admin.update_user_by_id(
            account_id, {"ban_duration": BAN_FOREVER if disabled else "none"}
        )

    def account_exists(self, account_id: str) -> bool:
        try:
            response = self.client.auth.admin.get_user_by_id(account_id)
        except AuthApiError as e:
            if getattr(e, "status", None) == 404:
                return False
            raise
        return bool(response and response.user)

    def find_account_id(self, email: str) -> Optional[str]:
        response = self.client.auth.admin.list_users()
        users = getattr(response, "users", response)
        for user in users:
            if (user.email or "").lower() == email.lower():
                return user.id
        return None

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        result = self.public_client.auth.sign_in_with_password({"email": email, "password": password})
        session = result.session
        if not session:
            raise RuntimeError("No session returned")
        return {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "expires_at": session.expires_at,
        }

    def sign_out(self) -> None:
        self.public_client.auth.sign_out()

    # Relational store

    def select(self, table: str, filters: Optional[Dict[str, Any]] = None,
               order: Optional[Order] = None, columns: str = "*") -> List[Dict[str, Any]]:
        query = self.client.table(table).select(columns)
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        for column, ascending in (order or []):
            query = query.order(column, desc=not ascending)
        return query.execute().data or []

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = self.client.table(table).insert(row).execute().data
        return data[0] if data else row

    def upsert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = self.client.table(table).upsert(row).execute().data
        return data[0] if data else row

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError(f"Refusing to update every row of {table}")
        query = self.client.table(table).update(values)
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute().data or []

    def delete(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError(f"Refusing to delete every row of {table}")
        query = self.client.table(table).delete()
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute().data or []

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.client.rpc(name, params or {}).execute().data

    def ping(self) -> None:
        """One cheap query, raises when the project cannot be reached"""
        self.client.table(TABLES['VENUES']).select("id").limit(1).execute()

    # Object storage

    def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        options = {"cache-control": "3600", "upsert": "true"}
        if content_type:
            options["content-type"] = content_type
        self.client.storage.from_(bucket).upload(path, data, options)
        logging.info(f"Uploaded {path} to bucket {bucket}")
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return self.client.storage.from_(bucket).get_public_url(path)

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        self.client.storage.from_(bucket).remove(list(paths))
