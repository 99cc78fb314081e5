"""Flash offers bounded context — push dispatch for time-limited venue offers.

A venue publishes a flash offer and asks for it to be pushed to nearby or
loyal users. This context resolves the audience from check-ins, favorites
and device registrations, applies notification preferences and rate
limits, fans the payload out to the push gateway in batches and records
the outcome for analytics and monitoring.
"""

import structlog
from protean.domain import Domain

from flash_offers.utils.logging import configure_logging

configure_logging()

flash_offers = Domain(name="flash_offers")

logger = structlog.get_logger(__name__)
