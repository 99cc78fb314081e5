"""Push gateway port — abstract interface for multicast push delivery."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class GatewayInitError(Exception):
    """The gateway could not be set up from the configured credentials."""


@dataclass(frozen=True)
class DeliveryResponse:
    """Per-address outcome reported by the gateway.

    ``error_code`` uses the ``messaging/<reason>`` vocabulary regardless of
    which gateway produced it.
    """

    success: bool
    error_code: str | None = None
    message_id: str | None = None


class PushGateway(ABC):
    """Abstract interface for push gateway adapters."""

    #: Most addresses accepted by one multicast call
    max_batch_size = 500

    @abstractmethod
    def send_multicast(self, tokens: list[str], payload: dict) -> list[DeliveryResponse]:
        """Send ``payload`` to every address in ``tokens``.

        Returns one response per address, in the same order. Raises when the
        whole call fails.
        """
        ...
