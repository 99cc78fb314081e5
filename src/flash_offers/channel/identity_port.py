"""Identity provider port — verifies caller access tokens."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""

    user_id: str
    email: str | None = None


class IdentityProvider(ABC):
    @abstractmethod
    def verify(self, access_token: str) -> Principal | None:
        """Return the principal for a valid token, None for an invalid or expired one.

        Raises when the provider itself cannot be reached.
        """
        ...
