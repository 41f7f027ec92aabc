from datetime import timedelta
import logging

from venue_backoffice.config import load_config
from venue_backoffice.services.provisioning import reconcile_provisioning
from venue_backoffice.utils.supabase_client import SupabaseClient


def main() -> dict:
    """Settle abandoned staff provisioning attempts once."""
    config = load_config()
    logging.basicConfig(level=config.LOG_LEVEL)
    backend = SupabaseClient.from_config(config)
    return reconcile_provisioning(backend, timedelta(seconds=config.PROVISIONING_STALE_AFTER))


if __name__ == "__main__":
    print("Running provisioning reconciliation...")
    summary = main()
    print(f"Reconciliation completed: {summary}")
