from pydantic import BaseModel, Field


class UserContext(BaseModel):
    """Authenticated caller, with the contributor record their profile links to"""

    id: str = Field(description="User ID (UUID string) from Supabase Auth")
    email: str | None = Field(None, description="User email address")
    contributor_id: str | None = Field(None, description="Linked contributor, if any")
    is_authenticated: bool = Field(False, description="Whether user is authenticated")

    @classmethod
    def authenticated(cls, user_id: str, email: str | None, contributor_id: str | None) -> "UserContext":
        """Create authenticated user context"""
        return cls(
            id=user_id,
            email=email,
            contributor_id=contributor_id,
            is_authenticated=True,
        )
