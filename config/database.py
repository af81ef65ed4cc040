"""
Supabase client for all services.

One cached client per process. Tests patch get_supabase_client in each
service module.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class ConnectionError(Exception):
    """Supabase client could not be created."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    The API handlers run with the service role key when it is configured,
    falling back to the anon key. Credentials are read once at cold start.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If the key is missing or the client cannot be created
    """
    key = settings.api_client_key
    if not key:
        logger.error("supabase_key_missing")
        raise ConnectionError("Missing Supabase configuration")

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )
        client = create_client(settings.supabase_url, key)
        logger.info("supabase_connected", status="success")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def check_connection() -> dict:
    """
    Count markets and products to prove the connection works.

    Returns:
        dict: status plus markets_count/products_count, or the error
    """
    try:
        client = get_supabase_client()

        markets = client.table("markets").select("id", count="exact").limit(1).execute()
        products = client.table("products").select("id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "markets_count": markets.count,
            "products_count": products.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
