from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from memorial.config.database import get_supabase_admin_client
from memorial.models.user import UserContext
from memorial.utils.exceptions import AuthenticationError
from memorial.utils.logging import get_logger
from supabase import Client

logger = get_logger(__name__)

# Security scheme for JWT tokens
security = HTTPBearer(auto_error=False)


class AuthService:
    """Verifies Supabase access tokens and links the user to a contributor"""

    def __init__(self, admin_client: Client | None = None):
        self._admin_client = admin_client

    @property
    def admin_client(self) -> Client:
        if self._admin_client is None:
            self._admin_client = get_supabase_admin_client()
        return self._admin_client

    def get_current_user_context(self, access_token: str) -> UserContext | None:
        """Verify the access token with Supabase and return UserContext."""
        try:
            response = self.admin_client.auth.get_user(access_token)
        except Exception as e:  # noqa: BLE001
            logger.warning("Token verification failed", error=str(e))
            return None

        if not response or not response.user or not response.user.id:
            logger.warning("Failed to verify access token - no user returned")
            return None

        user = response.user
        contributor_id = self._get_contributor_id(str(user.id))
        logger.debug("Successfully authenticated user", user_id=user.id, has_contributor=contributor_id is not None)
        return UserContext.authenticated(
            user_id=str(user.id),
            email=user.email,
            contributor_id=contributor_id,
        )

    def _get_contributor_id(self, user_id: str) -> str | None:
        """Contributor linked to the user's profile; absent on any lookup failure."""
        try:
            response = (
                self.admin_client.table("profiles")
                .select("contributor_id")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:  # noqa: BLE001
            logger.error("Failed to load profile", user_id=user_id, error=str(e))
            return None
        if not response.data:
            return None
        contributor_id = response.data[0].get("contributor_id")
        return str(contributor_id) if contributor_id else None


# Global auth service instance
auth_service = AuthService()


async def get_user_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserContext:
    """Dependency to get current authenticated user as UserContext"""
    if not credentials:
        raise AuthenticationError("Unauthorized")

    user_context = auth_service.get_current_user_context(credentials.credentials)
    if not user_context:
        raise AuthenticationError("Invalid authentication credentials")

    return user_context


async def get_optional_user_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserContext | None:
    """Like ``get_user_context`` but anonymous callers get ``None``"""
    if not credentials:
        return None
    return auth_service.get_current_user_context(credentials.credentials)
