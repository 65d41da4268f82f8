from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class AuthenticatedUser:
    """The signed-in user as supplied by the identity provider."""

    id: str
    display_name: str
    email: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "AuthenticatedUser":
        """Build from decoded ID-token claims (``user_id``/``sub``, ``name``, ``email``).

        Falls back to the e-mail address when no display name was set at sign-up.
        """
        user_id = claims.get("user_id") or claims.get("sub") or claims.get("uid")
        if not user_id:
            raise ValueError("ID token claims carry no user id")
        email = claims.get("email")
        display_name = claims.get("name") or claims.get("displayName") or email or ""
        return cls(id=str(user_id), display_name=str(display_name), email=email)
