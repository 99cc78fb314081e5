"""Batched fan-out of one payload to many device addresses.

Addresses are split into gateway-sized batches that run with bounded
concurrency. A batch that raises never aborts the others: every address in
it is reported as failed with the exception's message. Addresses the
gateway rejects as invalid are deactivated once, after all batches finish.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum

import structlog

from flash_offers.channel.push_port import PushGateway

logger = structlog.get_logger(__name__)


class ErrorCategory(Enum):
    INVALID_TOKEN = "invalid_token"
    QUOTA_EXCEEDED = "quota_exceeded"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


_CATEGORY_BY_CODE = {
    "messaging/invalid-registration-token": ErrorCategory.INVALID_TOKEN,
    "messaging/registration-token-not-registered": ErrorCategory.INVALID_TOKEN,
    "messaging/invalid-argument": ErrorCategory.INVALID_TOKEN,
    "messaging/quota-exceeded": ErrorCategory.QUOTA_EXCEEDED,
    "messaging/too-many-requests": ErrorCategory.QUOTA_EXCEEDED,
    "messaging/internal-error": ErrorCategory.SERVER_ERROR,
    "messaging/server-unavailable": ErrorCategory.SERVER_ERROR,
    "messaging/unavailable": ErrorCategory.UNAVAILABLE,
}


def categorize_error(error_code: str | None) -> ErrorCategory:
    return _CATEGORY_BY_CODE.get(error_code or "", ErrorCategory.UNKNOWN)


def categorize_exception(exc: Exception) -> ErrorCategory:
    """Category for an exception that failed a whole batch."""
    message = str(exc).lower()
    if "quota" in message or "too-many-requests" in message:
        return ErrorCategory.QUOTA_EXCEEDED
    return ErrorCategory.UNKNOWN


def split_into_batches(tokens: list[str], batch_size: int = 500) -> list[list[str]]:
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [tokens[i : i + batch_size] for i in range(0, len(tokens), batch_size)]


@dataclass(frozen=True)
class TokenError:
    token: str
    category: ErrorCategory
    error: str


@dataclass
class DispatchResult:
    success_count: int = 0
    failure_count: int = 0
    errors: list[TokenError] = field(default_factory=list)
    quota_dominated_batches: int = 0

    @classmethod
    def combine(cls, results) -> "DispatchResult":
        combined = cls()
        for result in results:
            combined.success_count += result.success_count
            combined.failure_count += result.failure_count
            combined.errors.extend(result.errors)
            combined.quota_dominated_batches += result.quota_dominated_batches
        return combined

    def count(self, category: ErrorCategory) -> int:
        return sum(1 for error in self.errors if error.category == category)

    def mark_if_quota_dominated(self, batch_size: int) -> "DispatchResult":
        """Flag this single-batch result when quota rejections exceed half of the batch."""
        if batch_size and self.count(ErrorCategory.QUOTA_EXCEEDED) > batch_size / 2:
            self.quota_dominated_batches = 1
        return self

    @property
    def is_quota_dominated(self) -> bool:
        """At least one batch lost more than half of its addresses to quota rejections."""
        return self.quota_dominated_batches > 0


class BatchDispatcher:
    def __init__(self, gateway: PushGateway, invalidator, batch_size: int = 500, max_concurrency: int = 4):
        self.gateway = gateway
        self.invalidator = invalidator
        self.batch_size = min(batch_size, gateway.max_batch_size)
        self.max_concurrency = max_concurrency

    async def dispatch(self, tokens: list[str], payload: dict) -> DispatchResult:
        """Send ``payload`` to every address. ``success + failure == len(tokens)``."""
        if not tokens:
            return DispatchResult()

        batches = split_into_batches(tokens, self.batch_size)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(index: int, batch: list[str]) -> DispatchResult:
            async with semaphore:
                return await self._send_batch(index, batch, payload)

        results = await asyncio.gather(*(bounded(i, batch) for i, batch in enumerate(batches)))
        result = DispatchResult.combine(results)

        invalid = [error.token for error in result.errors if error.category == ErrorCategory.INVALID_TOKEN]
        if invalid:
            await asyncio.to_thread(self.invalidator.invalidate, invalid)

        logger.info(
            "Dispatch complete",
            batches=len(batches),
            success_count=result.success_count,
            failure_count=result.failure_count,
            invalid_count=len(invalid),
        )
        return result

    async def _send_batch(self, index: int, batch: list[str], payload: dict) -> DispatchResult:
        if len(batch) > self.gateway.max_batch_size:
            raise ValueError(f"Batch size {len(batch)} exceeds gateway limit of {self.gateway.max_batch_size}")

        try:
            responses = await asyncio.to_thread(self.gateway.send_multicast, batch, payload)
        except Exception as exc:
            category = categorize_exception(exc)
            message = str(exc) or exc.__class__.__name__
            logger.error("Batch send failed", batch=index, batch_size=len(batch), error=message)
            return DispatchResult(
                success_count=0,
                failure_count=len(batch),
                errors=[TokenError(token=token, category=category, error=message) for token in batch],
            ).mark_if_quota_dominated(len(batch))

        result = DispatchResult()
        for position, token in enumerate(batch):
            response = responses[position] if position < len(responses) else None
            if response is not None and response.success:
                result.success_count += 1
                continue

            code = response.error_code if response is not None else "messaging/missing-response"
            category = categorize_error(code)
            result.failure_count += 1
            result.errors.append(TokenError(token=token, category=category, error=f"{code} ({category.value})"))

        return result.mark_if_quota_dominated(len(batch))
