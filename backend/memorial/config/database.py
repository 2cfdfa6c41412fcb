from memorial.config.settings import get_settings, get_service_role_key
from memorial.utils.exceptions import ConfigurationError
from supabase import Client, create_client

# Global Supabase admin client
_supabase_admin_client: Client | None = None


def get_supabase_admin_client() -> Client:
    """Get Supabase admin client with service role key.

    Identity data (people, claims, visibility preferences) is only readable
    with the service role; every name leaving the API goes through the
    payload shaping in ``memorial.identity``.
    """
    global _supabase_admin_client
    if _supabase_admin_client is None:
        settings = get_settings()
        if not settings.supabase_url:
            raise ConfigurationError("SUPABASE_URL environment variable is required")
        try:
            service_role_key = get_service_role_key()
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        _supabase_admin_client = create_client(settings.supabase_url, service_role_key)
    return _supabase_admin_client


def get_admin_db_client() -> Client:
    """FastAPI dependency providing the service-role client."""
    return get_supabase_admin_client()
