import logging
import os
from typing import Dict, List

from venue_backoffice.config import load_config
from venue_backoffice.database.models import TABLES, UserRole
from venue_backoffice.utils.supabase_client import SupabaseClient


def run_seed(backend, users: List[Dict[str, str]]) -> List[str]:
    """Create the given accounts with their roles, skipping emails that already exist."""
    logging.info("Running user seeding...")
    created_ids = []

    for user in users:
        role = UserRole(user["role"])
        if backend.find_account_id(user["email"]):
            logging.info(f"User {user['email']} already exists.")
            continue

        user_id = backend.create_account(user["email"], user["password"])
        logging.info(f"Created user {user['email']} with ID {user_id}")

        backend.upsert(TABLES['PROFILES'], {
            "id": user_id,
            "role": role.value,
            "venue_id": user.get("venue_id"),
            "full_name": user.get("full_name"),
        })
        created_ids.append(user_id)

    logging.info("User seeding completed.")
    return created_ids


def admin_from_env() -> List[Dict[str, str]]:
    email = os.getenv("SEED_ADMIN_EMAIL")
    password = os.getenv("SEED_ADMIN_PASSWORD")
    if not email or not password:
        raise ValueError("SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD must be set")
    return [{"email": email, "password": password, "role": UserRole.ADMIN.value}]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed(SupabaseClient.from_config(load_config()), admin_from_env())
