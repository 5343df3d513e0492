"""Authentication context model for typed user authentication."""

from dataclasses import dataclass
from uuid import UUID


@dataclass
class AuthenticatedUserContext:
    """Identity taken from a verified access token."""

    user_id: UUID
    email: str | None = None
    role: str = "authenticated"

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("User id is required in authentication context")
