import os
from pathlib import Path

import pytest

LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "integration": pytest.mark.integration,
    "bdd": pytest.mark.bdd,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Protean configuration overlay to load (PROTEAN_ENV)",
    )


def pytest_sessionstart(session):
    """Set PROTEAN_ENV before any domain module is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Mark each test with the layer its directory belongs to."""
    for item in items:
        parts = Path(str(item.fspath)).parts
        for layer, marker in LAYER_MARKERS.items():
            if layer in parts:
                item.add_marker(marker)
                break

        # End-to-end tests count as slow unless they opt out with `fast`
        if "integration" in parts and item.get_closest_marker("fast") is None:
            item.add_marker(pytest.mark.slow)
