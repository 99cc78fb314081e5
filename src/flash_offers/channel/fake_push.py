"""Fake push gateway — records multicast calls for testing."""

from uuid import uuid4

from flash_offers.channel.push_port import DeliveryResponse, PushGateway


class FakePushAdapter(PushGateway):
    """Push gateway that records batches in memory for test assertions.

    Individual addresses can be made to fail with a given error code, and a
    whole call can be made to raise.
    """

    def __init__(self):
        self.sent_batches: list[dict] = []
        self.token_errors: dict[str, str] = {}
        self.batch_exception: Exception | None = None

    def configure(self, token_errors: dict[str, str] | None = None, batch_exception: Exception | None = None):
        """Configure the fake adapter behavior for testing."""
        self.token_errors = dict(token_errors or {})
        self.batch_exception = batch_exception

    def send_multicast(self, tokens: list[str], payload: dict) -> list[DeliveryResponse]:
        if self.batch_exception is not None:
            raise self.batch_exception

        self.sent_batches.append({"tokens": list(tokens), "payload": payload})

        return [
            DeliveryResponse(success=False, error_code=self.token_errors[token])
            if token in self.token_errors
            else DeliveryResponse(success=True, message_id=f"push-{uuid4().hex[:12]}")
            for token in tokens
        ]

    @property
    def sent_tokens(self) -> list[str]:
        return [token for batch in self.sent_batches for token in batch["tokens"]]

    def reset(self):
        """Clear recorded batches (useful between tests)."""
        self.sent_batches.clear()
        self.token_errors = {}
        self.batch_exception = None
