"""Domain events for the audience aggregates."""

from protean.fields import DateTime, Identifier, String

from flash_offers.domain import flash_offers


@flash_offers.event(part_of="DeviceRegistration")
class DeviceRegistrationDeactivated:
    """The push gateway reported the device address as permanently invalid."""

    __version__ = 1

    registration_id: Identifier(required=True)
    user_id: Identifier(required=True)
    platform: String()
    deactivated_at: DateTime(required=True)
