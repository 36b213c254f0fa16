# Test configuration

import json
import os
import sys
from copy import deepcopy

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mrf_loader.catalog.database import Database  # noqa: E402
from mrf_loader.config.settings import Settings  # noqa: E402
from mrf_loader.ingest.decoder import decode  # noqa: E402


SAMPLE_PRICE = {
    "negotiated_type": "negotiated",
    "negotiated_rate": 650.00,
    "expiration_date": "2025-12-31",
    "service_code": ["70551"],
    "billing_class": "professional",
}


def _price(**overrides):
    price = deepcopy(SAMPLE_PRICE)
    price.update(overrides)
    return price


def _service(billing_code="70551", name="MRI brain without contrast", rate_groups=None, **overrides):
    service = {
        "negotiation_arrangement": "ffs",
        "name": name,
        "billing_code_type": "CPT",
        "billing_code_type_version": "2025",
        "billing_code": billing_code,
        "description": f"{name} ({billing_code})",
        "negotiated_rates": rate_groups if rate_groups is not None else [],
    }
    service.update(overrides)
    return service


@pytest.fixture
def make_price():
    """Factory for a valid price entry dict."""
    return _price


@pytest.fixture
def make_service():
    """Factory for a valid service dict."""
    return _service


@pytest.fixture
def round_trip_service():
    """One service, one rate group, two price entries."""
    return _service(rate_groups=[{
        "provider_references": [101, 202, 303],
        "negotiated_prices": [
            _price(),
            _price(negotiated_type="percentage", negotiated_rate=85.50,
                   billing_class="institutional"),
        ],
    }])


@pytest.fixture
def three_service_document():
    """Services flattening to 2, 0 and 5 rate rows (7 in total)."""
    return [
        _service(billing_code="70551", rate_groups=[{
            "provider_references": [1],
            "negotiated_prices": [_price(), _price(billing_class="institutional")],
        }]),
        _service(billing_code="99213", name="Office visit established patient"),
        _service(billing_code="27447", name="Total knee arthroplasty", rate_groups=[
            {
                "provider_references": [10, 11],
                "negotiated_prices": [
                    _price(negotiated_rate=21000),
                    _price(negotiated_rate=19500.25),
                    _price(negotiated_type="percentage", negotiated_rate=80),
                ],
            },
            {
                "provider_references": [12],
                "negotiated_prices": [
                    _price(negotiated_rate=22000, billing_class="institutional"),
                    _price(negotiated_rate=0),
                ],
            },
        ]),
    ]


@pytest.fixture
def to_records():
    """Run service dicts through the JSON decoder."""
    def _decode(services):
        return decode(json.dumps(services).encode("utf-8"), source="fixture")
    return _decode


@pytest.fixture
def write_document(tmp_path):
    """Write a list of service dicts as a JSON file and return its path."""
    def _write(services, name="in-network.json", directory=None):
        target = (directory or tmp_path) / name
        target.write_text(json.dumps(services), encoding="utf-8")
        return target
    return _write


@pytest.fixture
def test_settings():
    """Settings bound to an in-memory SQLite database."""
    return Settings(
        database_url="sqlite://",
        batch_size=100,
        batch_max_attempts=1,
        batch_retry_wait_seconds=0,
        log_json=False,
    )


@pytest.fixture
def database(test_settings):
    """Provisioned in-memory catalog, disposed after the test."""
    db = Database(test_settings)
    db.ensure_schema()
    yield db
    db.dispose()
