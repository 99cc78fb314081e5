"""Flash offer push HTTP API package."""

from flash_offers.api.routes import router

__all__ = ["router"]
