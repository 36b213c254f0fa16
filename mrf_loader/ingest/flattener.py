"""
Flatten service records into table rows.

Pure transformation, no I/O: one service row per record and one rate row per
(rate group x price entry) pair, each rate row carrying its group's provider
references.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple, TypedDict

from mrf_loader.ingest.records import ServiceRecord


class ServiceRow(TypedDict):
    negotiation_arrangement: str
    name: str
    billing_code_type: str
    billing_code_type_version: str
    billing_code: str
    description: Optional[str]


class RateRow(TypedDict):
    provider_references: List[int]
    negotiated_type: str
    negotiated_rate: Decimal
    expiration_date: date
    service_codes: List[str]
    billing_class: str


def service_row(service: ServiceRecord) -> ServiceRow:
    return ServiceRow(
        negotiation_arrangement=service.negotiation_arrangement,
        name=service.name,
        billing_code_type=service.billing_code_type,
        billing_code_type_version=service.billing_code_type_version,
        billing_code=service.billing_code,
        description=service.description,
    )


def rate_rows(service: ServiceRecord) -> List[RateRow]:
    """Rate rows for a service, in document order."""
    rows: List[RateRow] = []
    for group in service.negotiated_rates:
        for price in group.negotiated_prices:
            rows.append(RateRow(
                # Copies, so rows never share a list with each other or the record
                provider_references=list(group.provider_references),
                negotiated_type=price.negotiated_type,
                negotiated_rate=price.negotiated_rate,
                expiration_date=price.expiration_date,
                service_codes=list(price.service_code),
                billing_class=price.billing_class,
            ))
    return rows


def flatten(service: ServiceRecord) -> List[Tuple[ServiceRow, RateRow]]:
    """
    Pair the service row with each of its rate rows.

    A service without price entries flattens to an empty list; it still gets
    a row of its own through `service_row`.
    """
    parent = service_row(service)
    return [(parent, row) for row in rate_rows(service)]
