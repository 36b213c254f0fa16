"""Ingestion orchestrator: file or drop folder in, committed batches out."""

import logging
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Union

from mrf_loader.catalog.database import Database
from mrf_loader.common.logging_config import PerformanceTracker
from mrf_loader.common.metrics import batch_retries_total, files_processed_total
from mrf_loader.common.resilience import call_with_retry
from mrf_loader.config.settings import Settings
from mrf_loader.ingest.batch_writer import BatchResult, BatchWriteError, BatchWriter
from mrf_loader.ingest.decoder import DecodeError, decode_file
from mrf_loader.ingest.folder_scanner import FolderScanner
from mrf_loader.ingest.records import ServiceRecord

logger = logging.getLogger(__name__)


class OrchestrationError(Exception):
    pass


class IngestionCancelled(Exception):
    """The run was stopped between two batches."""
    pass


@dataclass
class BatchProgress:
    source: str
    batch_number: int  # 1-based
    total_batches: int
    services_written: int
    rates_written: int


@dataclass
class FileSummary:
    path: str
    services: int = 0
    rates: int = 0
    batches: int = 0


@dataclass
class IngestionSummary:
    files: List[FileSummary] = field(default_factory=list)

    @property
    def services(self) -> int:
        return sum(f.services for f in self.files)

    @property
    def rates(self) -> int:
        return sum(f.rates for f in self.files)

    @property
    def batches(self) -> int:
        return sum(f.batches for f in self.files)

    def to_dict(self) -> dict:
        return {
            "files": [asdict(f) for f in self.files],
            "services": self.services,
            "rates": self.rates,
            "batches": self.batches,
        }


def iter_batches(services: Sequence[ServiceRecord], batch_size: int) -> Iterator[Sequence[ServiceRecord]]:
    """Consecutive slices of at most `batch_size` services, in order."""
    for start in range(0, len(services), batch_size):
        yield services[start:start + batch_size]


class IngestionOrchestrator:
    """
    Drives decoding and batch writing for one ingestion run.

    Files and batches are processed strictly one after another. The first
    decode or batch failure ends the run; whatever was committed before it
    stays committed.
    """

    def __init__(
        self,
        database: Database,
        settings: Optional[Settings] = None,
        writer: Optional[BatchWriter] = None,
        progress_callback: Optional[Callable[[BatchProgress], None]] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        self.database = database
        self.settings = settings or database.settings
        self.writer = writer or BatchWriter(database)
        self.scanner = FolderScanner(self.settings.json_extensions)
        self.progress_callback = progress_callback
        self.stop_event = stop_event

    def resolve_inputs(self, path: Union[str, Path]) -> List[Path]:
        """
        Turn the input path into the ordered list of files to ingest.

        Raises:
            OrchestrationError: If the path is unusable or a folder entry cannot be read
        """
        target = Path(path)
        if not target.exists():
            raise OrchestrationError(f"Input path not found: {path}")
        if target.is_file():
            return [target]
        if target.is_dir():
            try:
                files = [Path(entry["path"]) for entry in self.scanner.scan_folder(target)]
            except OSError as e:
                raise OrchestrationError(f"Cannot list input folder {target}: {e}") from e
            logger.info(f"Found {len(files)} input files in {target}")
            return files
        raise OrchestrationError(f"Input path is neither a file nor a directory: {path}")

    def ingest(self, path: Union[str, Path]) -> IngestionSummary:
        """
        Ingest a single file or every matching file of a directory.

        Returns:
            IngestionSummary with per-file row counts

        Raises:
            OrchestrationError: Bad input path
            DecodeError: A file failed to decode
            BatchWriteError: A batch failed and was rolled back
            IngestionCancelled: The stop event was set between batches
        """
        files = self.resolve_inputs(path)
        summary = IngestionSummary()

        for number, file_path in enumerate(files, start=1):
            logger.info(f"Processing file {number}/{len(files)}: {file_path}")
            summary.files.append(self.ingest_file(file_path))

        logger.info(
            f"Ingestion finished: {len(summary.files)} files, {summary.services} services, "
            f"{summary.rates} negotiated rates in {summary.batches} batches"
        )
        return summary

    def ingest_file(self, file_path: Union[str, Path]) -> FileSummary:
        """Decode one file and write it batch by batch."""
        source = str(file_path)
        try:
            services = decode_file(file_path)
        except DecodeError:
            files_processed_total.labels(status="decode_error").inc()
            raise

        batch_size = self.settings.batch_size
        total_batches = (len(services) + batch_size - 1) // batch_size
        logger.info(f"Found {len(services)} services in {source} ({total_batches} batches)")

        file_summary = FileSummary(path=source)
        for batch_index, batch in enumerate(iter_batches(services, batch_size)):
            self._check_stop(source, batch_index)
            try:
                result = self._write(batch, batch_index, source)
            except BatchWriteError:
                files_processed_total.labels(status="write_error").inc()
                logger.error(
                    f"Aborting {source} after {file_summary.batches}/{total_batches} committed batches"
                )
                raise

            file_summary.batches += 1
            file_summary.services += result.services_written
            file_summary.rates += result.rates_written
            logger.info(f"Processed batch {batch_index + 1}/{total_batches} of {source}")

            if self.progress_callback is not None:
                self.progress_callback(BatchProgress(
                    source=source,
                    batch_number=batch_index + 1,
                    total_batches=total_batches,
                    services_written=result.services_written,
                    rates_written=result.rates_written,
                ))

        files_processed_total.labels(status="success").inc()
        logger.info(
            f"Ingested {file_summary.services} services and {file_summary.rates} "
            f"negotiated rates from {source}"
        )
        return file_summary

    def _write(self, batch: Sequence[ServiceRecord], batch_index: int, source: str) -> BatchResult:
        def on_retry(exc: BaseException) -> None:
            batch_retries_total.inc()
            logger.warning(f"Retrying batch {batch_index} of {source} after transient failure: {exc}")

        with PerformanceTracker("write_batch", logger, source=source, batch_index=batch_index,
                                services=len(batch)):
            return call_with_retry(
                self.writer.write_batch,
                batch,
                batch_index=batch_index,
                source=source,
                max_attempts=self.settings.batch_max_attempts,
                wait_seconds=self.settings.batch_retry_wait_seconds,
                on_retry=on_retry,
            )

    def _check_stop(self, source: str, batch_index: int) -> None:
        if self.stop_event is not None and self.stop_event.is_set():
            raise IngestionCancelled(
                f"Stopped before batch {batch_index} of {source}"
            )
