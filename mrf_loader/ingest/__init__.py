"""
Ingest module for MRF documents.

Provides strict decoding, flattening, transactional batch writing and the
orchestrator that ties them together for files and drop folders.
"""

from mrf_loader.ingest.records import (
    NegotiatedPrice,
    NegotiatedRateGroup,
    ServiceRecord,
)
from mrf_loader.ingest.decoder import DecodeError, decode, decode_file
from mrf_loader.ingest.flattener import flatten, rate_rows, service_row
from mrf_loader.ingest.batch_writer import BatchResult, BatchWriteError, BatchWriter
from mrf_loader.ingest.folder_scanner import FolderScanner
from mrf_loader.ingest.orchestrator import (
    IngestionCancelled,
    IngestionOrchestrator,
    IngestionSummary,
    OrchestrationError,
)

__all__ = [  # ruff: noqa: RUF022
    # Records
    "NegotiatedPrice",
    "NegotiatedRateGroup",
    "ServiceRecord",
    # Decoding
    "DecodeError",
    "decode",
    "decode_file",
    # Flattening
    "flatten",
    "rate_rows",
    "service_row",
    # Writing
    "BatchResult",
    "BatchWriteError",
    "BatchWriter",
    # Orchestration
    "FolderScanner",
    "IngestionCancelled",
    "IngestionOrchestrator",
    "IngestionSummary",
    "OrchestrationError",
]
