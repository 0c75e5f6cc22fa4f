from dataclasses import dataclass
from typing import Any

from htr_worker.transkribus.exceptions import AuthenticationError

REAUTHENTICATE_MARGIN_SECONDS = 5 * 60
REFRESH_MARGIN_SECONDS = 30


@dataclass(frozen=True)
class TokenState:
    """Credentials returned by the token endpoint, stamped with when they arrived."""

    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_in: int
    retrieved_at: float

    def needs_reauthentication(self, now: float) -> bool:
        """True once the refresh token is within five minutes of expiring."""
        return self.retrieved_at + self.refresh_expires_in - now <= REAUTHENTICATE_MARGIN_SECONDS

    def needs_refresh(self, now: float) -> bool:
        """True once the access token is within thirty seconds of expiring."""
        return self.retrieved_at + self.access_expires_in - now <= REFRESH_MARGIN_SECONDS

    @classmethod
    def from_response(cls, payload: dict[str, Any], retrieved_at: float) -> "TokenState":
        try:
            return cls(
                access_token=str(payload["access_token"]),
                refresh_token=str(payload["refresh_token"]),
                access_expires_in=int(payload["expires_in"]),
                refresh_expires_in=int(payload["refresh_expires_in"]),
                retrieved_at=retrieved_at,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError(
                f"Malformed token response: {exc}", status_code=200
            ) from exc
