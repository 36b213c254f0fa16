"""
Domain model for MRF in-network records.

Mirrors the nested JSON layout: a service owns rate groups, a rate group owns
priced entries.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

# NUMERIC(15, 2): 13 integer digits, 2 fractional
RATE_QUANTUM = Decimal("0.01")
MAX_RATE = Decimal("9999999999999.99")
ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")

NegotiatedType = Literal["percentage", "negotiated"]
BillingClass = Literal["professional", "institutional"]


class NegotiatedPrice(BaseModel):
    model_config = ConfigDict(frozen=True)

    negotiated_type: NegotiatedType
    negotiated_rate: Decimal = Field(ge=0)
    expiration_date: date
    service_code: List[StrictStr]
    billing_class: BillingClass

    @field_validator("negotiated_rate", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        # Quoted rates and booleans are not JSON numbers
        if isinstance(value, (str, bool)):
            raise ValueError("rate must be a JSON number")
        return value

    @field_validator("expiration_date", mode="before")
    @classmethod
    def _require_iso_date(cls, value: Any) -> Any:
        if not isinstance(value, str) or not ISO_DATE.fullmatch(value):
            raise ValueError("expected a date string in YYYY-MM-DD format")
        return value

    @field_validator("negotiated_rate")
    @classmethod
    def _to_cents(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("rate must be a finite number")
        value = value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
        if value > MAX_RATE:
            raise ValueError(f"rate exceeds the maximum of {MAX_RATE}")
        return value


class NegotiatedRateGroup(BaseModel):
    """Provider references sharing one or more negotiated prices."""
    model_config = ConfigDict(frozen=True)

    provider_references: List[StrictInt]
    negotiated_prices: List[NegotiatedPrice]


class ServiceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    negotiation_arrangement: StrictStr
    name: StrictStr
    billing_code_type: StrictStr
    billing_code_type_version: StrictStr
    billing_code: StrictStr
    description: Optional[StrictStr] = None
    negotiated_rates: List[NegotiatedRateGroup]

    @property
    def price_count(self) -> int:
        return sum(len(group.negotiated_prices) for group in self.negotiated_rates)
