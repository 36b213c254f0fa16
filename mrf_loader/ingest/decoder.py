"""
Strict decoder for MRF JSON documents.

A document is a JSON array of service objects. Decoding is all-or-nothing:
the first structural or validation problem fails the whole document with a
`DecodeError` that names the offending element.
"""

import codecs
import gzip
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from mrf_loader.ingest.records import ServiceRecord

logger = logging.getLogger(__name__)

_DOCUMENT_ADAPTER = TypeAdapter(List[ServiceRecord])


class DecodeError(Exception):
    """Input JSON is malformed or fails structural validation."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        position: Optional[str] = None,
        field: Optional[str] = None,
        error_count: int = 1,
    ):
        self.message = message
        self.source = source
        self.position = position
        self.field = field
        self.error_count = error_count
        super().__init__(self._render())

    def _render(self) -> str:
        parts = []
        if self.source:
            parts.append(self.source)
        if self.position:
            parts.append(f"at {self.position}")
        text = " ".join(parts)
        detail = f"{text}: {self.message}" if text else self.message
        if self.error_count > 1:
            detail += f" (and {self.error_count - 1} more error(s))"
        return detail


def format_location(loc: Sequence[Union[int, str]]) -> str:
    """
    Render a pydantic error location as a JSON-path-like string.

    (3, 'negotiated_rates', 0, 'negotiated_type') -> '[3].negotiated_rates[0].negotiated_type'
    """
    rendered = ""
    for part in loc:
        if isinstance(part, int):
            rendered += f"[{part}]"
        else:
            rendered += f".{part}" if rendered else str(part)
    return rendered or "<document>"


def _first_error(error: ValidationError) -> Tuple[str, Optional[str], str]:
    details = error.errors(include_url=False)
    first = details[0]
    loc = tuple(first.get("loc", ()))
    field = next((part for part in reversed(loc) if isinstance(part, str)), None)
    message = first.get("msg", "invalid value")
    if first.get("type") == "missing":
        message = f"missing required field {field!r}"
    return format_location(loc), field, message


def decode(raw: bytes, source: Optional[str] = None) -> List[ServiceRecord]:
    """
    Decode one MRF document into service records.

    Args:
        raw: UTF-8 encoded JSON array of service objects
        source: Name used in error messages (usually the file path)

    Returns:
        Services in document order

    Raises:
        DecodeError: If the document is not valid JSON or any element fails validation
    """
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8):]

    try:
        services = _DOCUMENT_ADAPTER.validate_json(raw)
    except ValidationError as e:
        position, field, message = _first_error(e)
        raise DecodeError(
            message,
            source=source,
            position=position,
            field=field,
            error_count=e.error_count(),
        ) from e

    logger.debug(f"Decoded {len(services)} services from {source or '<memory>'}")
    return services


def read_document(path: Union[str, Path]) -> bytes:
    """Read a document, gunzipping names that end in .gz."""
    path = Path(path)
    try:
        if path.suffix.lower() == ".gz":
            with gzip.open(path, "rb") as f:
                return f.read()
        return path.read_bytes()
    except (OSError, EOFError) as e:
        raise DecodeError(f"cannot read file: {e}", source=str(path)) from e


def decode_file(path: Union[str, Path]) -> List[ServiceRecord]:
    """Read and decode one file; files are decoded independently of each other."""
    return decode(read_document(path), source=str(path))
