"""Authentication schemas."""

from pydantic import BaseModel, Field

ADMIN_ROLE = "admin"


class AuthPrincipal(BaseModel):
    """Normalized authenticated principal used by business services."""

    user_id: str = Field(min_length=1)
    role: str = Field(default="user", min_length=1)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE
