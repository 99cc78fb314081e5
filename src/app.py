"""Flash offer push FastAPI application.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000
"""

# Domain initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the configuration overlay.
from flash_offers.api.app import create_app
from flash_offers.domain import flash_offers

flash_offers.init()

app = create_app()
