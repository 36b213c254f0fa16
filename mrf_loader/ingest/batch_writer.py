"""
Transactional batch writer.

Writes a slice of decoded services as one atomic unit: every service row and
every flattened rate row of the batch is committed together, or nothing is.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from mrf_loader.catalog.database import Database
from mrf_loader.catalog.models import InsuranceService, NegotiatedRate
from mrf_loader.common.metrics import track_batch_write
from mrf_loader.ingest.flattener import rate_rows, service_row
from mrf_loader.ingest.records import ServiceRecord

logger = logging.getLogger(__name__)


class BatchWriteError(Exception):
    """A batch could not be committed and was rolled back in full."""

    def __init__(
        self,
        message: str,
        batch_index: int,
        source: Optional[str] = None,
        record_index: Optional[int] = None,
        billing_code: Optional[str] = None,
        transient: bool = False,
    ):
        self.batch_index = batch_index
        self.source = source
        self.record_index = record_index
        self.billing_code = billing_code
        self.transient = transient

        where = f"batch {batch_index}"
        if source:
            where = f"{source} {where}"
        if record_index is not None:
            where += f", service #{record_index}"
            if billing_code:
                where += f" (billing_code={billing_code})"
        super().__init__(f"{where}: {message}")


@dataclass
class BatchResult:
    """Rows committed by one batch."""
    batch_index: int
    services_written: int
    rates_written: int


def is_transient_error(error: SQLAlchemyError) -> bool:
    """
    Classify a store error.

    Integrity and data errors are caused by the rows themselves and would fail
    again; dropped connections and operational errors may not.
    """
    if isinstance(error, (IntegrityError, DataError)):
        return False
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    return isinstance(error, (OperationalError, InterfaceError))


class BatchWriter:
    """
    Inserts services and their negotiated rates, one transaction per batch.

    The batch size is decided by the caller. The writer never retries.
    """

    def __init__(self, database: Database):
        self.database = database

    @track_batch_write
    def write_batch(
        self,
        services: Sequence[ServiceRecord],
        batch_index: int = 0,
        source: Optional[str] = None,
    ) -> BatchResult:
        """
        Write one batch atomically.

        Each service row is flushed first so its identity is known before its
        rate rows reference it.

        Args:
            services: Decoded services, in document order
            batch_index: Position of the batch within its file (for error reporting)
            source: Input file name (for error reporting)

        Returns:
            BatchResult with the number of rows committed

        Raises:
            BatchWriteError: If any row fails; the whole batch is rolled back
        """
        rates_written = 0
        current: Optional[int] = None

        try:
            with self.database.session_scope() as session:
                for current, record in enumerate(services):
                    service = InsuranceService(**service_row(record))
                    session.add(service)
                    session.flush()

                    rows = [
                        NegotiatedRate(service_id=service.id, **row)
                        for row in rate_rows(record)
                    ]
                    if rows:
                        session.add_all(rows)
                        session.flush()
                    rates_written += len(rows)
                # Commit failures are attributed to the batch, not a record
                current = None
        except SQLAlchemyError as e:
            billing_code = services[current].billing_code if current is not None else None
            error = BatchWriteError(
                str(getattr(e, "orig", None) or e),
                batch_index=batch_index,
                source=source,
                record_index=current,
                billing_code=billing_code,
                transient=is_transient_error(e),
            )
            logger.error(f"Rolled back {error}")
            raise error from e

        logger.debug(
            f"Committed batch {batch_index}: {len(services)} services, {rates_written} rates"
        )
        return BatchResult(
            batch_index=batch_index,
            services_written=len(services),
            rates_written=rates_written,
        )
