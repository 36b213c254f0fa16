"""
Read-only aggregate queries over the negotiated-rate catalog.

Used after an ingestion run to verify what landed in the store.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from mrf_loader.catalog.database import Database
from mrf_loader.catalog.models import InsuranceService, NegotiatedRate

logger = logging.getLogger(__name__)


class ReportingError(Exception):
    """A statistics query failed."""
    pass


@dataclass
class IngestionStatistics:
    service_count: int
    rate_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RateSample:
    """One joined service/rate row for an operator spot check."""
    name: str
    billing_code: str
    negotiated_rate: Decimal
    billing_class: str


class StatisticsReporter:
    """Counts and samples rows; never writes."""

    def __init__(self, database: Database):
        self.database = database

    def summarize(self) -> IngestionStatistics:
        """
        Count services and negotiated rates.

        Returns:
            IngestionStatistics

        Raises:
            ReportingError: If either count query fails
        """
        try:
            with self.database.session_factory() as session:
                service_count = session.scalar(
                    select(func.count()).select_from(InsuranceService))
                rate_count = session.scalar(
                    select(func.count()).select_from(NegotiatedRate))
        except SQLAlchemyError as e:
            raise ReportingError(f"Failed to count catalog rows: {e}") from e

        stats = IngestionStatistics(service_count=service_count or 0, rate_count=rate_count or 0)
        logger.info(
            "Database statistics",
            extra={"extra_fields": stats.to_dict()},
        )
        return stats

    def sample_rates(self, limit: int = 5) -> List[RateSample]:
        """
        Fetch a few joined service/rate rows.

        Args:
            limit: Maximum number of rows

        Raises:
            ReportingError: If the query fails
        """
        query = (
            select(
                InsuranceService.name,
                InsuranceService.billing_code,
                NegotiatedRate.negotiated_rate,
                NegotiatedRate.billing_class,
            )
            .join(NegotiatedRate, NegotiatedRate.service_id == InsuranceService.id)
            .order_by(NegotiatedRate.id)
            .limit(limit)
        )
        try:
            with self.database.session_factory() as session:
                rows = session.execute(query).all()
        except SQLAlchemyError as e:
            raise ReportingError(f"Failed to sample negotiated rates: {e}") from e

        return [
            RateSample(
                name=row.name,
                billing_code=row.billing_code,
                negotiated_rate=row.negotiated_rate,
                billing_class=row.billing_class,
            )
            for row in rows
        ]
