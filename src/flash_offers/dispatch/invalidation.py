"""Deactivation of device registrations the gateway rejected permanently."""

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.utils.globals import current_domain

from flash_offers.audience.device import DeviceRegistration

logger = structlog.get_logger(__name__)


class TokenInvalidator:
    def invalidate(self, tokens) -> int:
        """Deactivate every registration holding one of ``tokens``.

        Runs as one unit of work. Failures are logged and reported as zero
        deactivations; delivery results are never affected.
        """
        tokens = list(dict.fromkeys(tokens))
        if not tokens:
            return 0

        repo = current_domain.repository_for(DeviceRegistration)
        try:
            with UnitOfWork():
                registrations = [r for r in repo.with_tokens(tokens) if r.is_active]
                for registration in registrations:
                    registration.deactivate()
                    repo.add(registration)
        except Exception as exc:
            logger.error("Failed to deactivate device registrations", addresses=len(tokens), error=str(exc))
            return 0

        logger.info("Deactivated device registrations", addresses=len(tokens), deactivated=len(registrations))
        return len(registrations)
