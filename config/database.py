"""
Database connection management.

Provides the Supabase client singleton used as the import destination store.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        DatabaseError: If Supabase is not configured or connection fails
    """
    if not settings.supabase_configured:
        logger.error("supabase_not_configured")
        raise DatabaseError("connect", "Supabase URL and key are not configured")

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        # Test connection with simple query
        client.table("customers").select("id").limit(1).execute()

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseError("connect", str(e), {"error_type": type(e).__name__}) from e


class DatabaseSession:
    """
    Context manager for database operations with logging.

    Usage:
        with DatabaseSession("find_existing_invoice") as db:
            result = db.table("invoices").select("id").execute()
    """

    def __init__(self, operation_name: str, client: Optional[Client] = None):
        self.operation_name = operation_name
        self.client = client

    def __enter__(self) -> Client:
        logger.debug(
            "db_operation_start",
            operation=self.operation_name
        )
        if self.client is None:
            self.client = get_supabase_client()
        return self.client

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "db_operation_failed",
                operation=self.operation_name,
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        else:
            logger.debug(
                "db_operation_complete",
                operation=self.operation_name
            )
        return False  # Don't suppress exceptions


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()

        customers = client.table("customers").select("id", count="exact").execute()
        invoices = client.table("invoices").select("id", count="exact").execute()

        return {
            "status": "healthy",
            "customers_count": customers.count,
            "invoices_count": invoices.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }

