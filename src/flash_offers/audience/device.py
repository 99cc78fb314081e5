"""DeviceRegistration aggregate — a push address owned by a user.

A user may own several registrations, one per installed device. Only
active registrations are ever targeted; a registration the gateway
rejects as unregistered or malformed is deactivated and stays that way
until the client re-registers.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String

from flash_offers.audience.events import DeviceRegistrationDeactivated
from flash_offers.domain import flash_offers


class Platform(Enum):
    IOS = "ios"
    ANDROID = "android"


@flash_offers.aggregate
class DeviceRegistration:
    user_id: Identifier(required=True)
    token: String(required=True, max_length=4096)
    platform: String(choices=Platform, required=True)
    is_active: Boolean(default=True)

    created_at: DateTime()
    updated_at: DateTime()

    def deactivate(self) -> None:
        if not self.is_active:
            return

        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now

        self.raise_(
            DeviceRegistrationDeactivated(
                registration_id=str(self.id),
                user_id=str(self.user_id),
                platform=self.platform,
                deactivated_at=now,
            )
        )
