"""Row sources: turn a resource into a lazy, forward-only stream of string rows."""

import codecs
import csv
import io
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Iterator

import requests

from datastore.exceptions import ConfigurationError, InvalidContentError, ResourceNotFoundError
from datastore.resource import Resource
from datastore.types import Row

logger = logging.getLogger(__name__)

SNIFF_BYTES = 8192
HTTP_TIMEOUT = 10
TEXT_MEDIA_TYPES = {"application/csv"}
DELIMITERS = {"text/tab-separated-values": "\t"}


class RowSourceFactory(ABC):
    """Opens a fresh row stream for a resource on every call.

    Streams cannot be rewound or started at an offset; the importer skips
    rows it has already stored.
    """

    @abstractmethod
    def open(self, resource: Resource) -> Iterator[Row]:
        """Open the resource and return an iterator over its rows, header first.

        Raises ResourceNotFoundError when the bytes cannot be reached and
        InvalidContentError when they are not text of the declared type.
        Either may also be raised while iterating.
        """

    def config(self) -> dict[str, Any] | None:
        return None


class CsvRowSourceFactory(RowSourceFactory):
    """Delimited text over local files or http(s) URLs, tokenized with ``csv``.

    ``delimiter`` and ``encoding`` default to what the resource's media type
    declares. Rows whose cells are all blank are skipped.
    """

    def __init__(
        self,
        delimiter: str | None = None,
        encoding: str | None = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.delimiter = delimiter
        self.encoding = encoding
        self.timeout = timeout

    def open(self, resource: Resource) -> Iterator[Row]:
        mime = resource.mime
        if not (mime.startswith("text/") or mime in TEXT_MEDIA_TYPES):
            raise InvalidContentError(resource.location, f"unsupported media type {mime}")

        encoding = self.encoding or resource.charset
        try:
            codec = codecs.lookup(encoding)
        except LookupError as e:
            raise InvalidContentError(resource.location, f"unknown encoding {encoding}") from e
        if codec.name == "utf-8":
            encoding = "utf-8-sig"
        delimiter = self.delimiter or DELIMITERS.get(mime, ",")

        buffer = self._open_remote(resource) if resource.is_remote else self._open_local(resource)
        try:
            self._sniff(resource, buffer, encoding)
        except Exception:
            buffer.close()
            raise
        text = io.TextIOWrapper(buffer, encoding=encoding, newline="")
        logger.debug(
            "Opened %s (encoding=%s, delimiter=%r)", resource.location, encoding, delimiter
        )
        return self._iter_rows(resource.location, text, delimiter)

    def _open_local(self, resource: Resource) -> io.BufferedReader:
        path = resource.location
        if not os.path.isfile(path):
            raise ResourceNotFoundError(path)
        try:
            return open(path, "rb", buffering=SNIFF_BYTES)
        except OSError as e:
            raise ResourceNotFoundError(path, str(e)) from e

    def _open_remote(self, resource: Resource) -> io.BufferedReader:
        url = resource.location
        try:
            resp = requests.get(url, stream=True, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ResourceNotFoundError(url, str(e)) from e
        resp.raw.decode_content = True
        return io.BufferedReader(resp.raw, buffer_size=SNIFF_BYTES)

    def _sniff(self, resource: Resource, buffer: io.BufferedReader, encoding: str) -> None:
        """Reject binary or undecodable content before any row is produced."""
        sample = buffer.peek(SNIFF_BYTES)[:SNIFF_BYTES]
        if b"\x00" in sample:
            raise InvalidContentError(resource.location, "binary content")
        try:
            codecs.getincrementaldecoder(encoding)().decode(sample, final=False)
        except UnicodeDecodeError as e:
            raise InvalidContentError(resource.location, f"not valid {encoding} text") from e

    def _iter_rows(self, location: str, text: io.TextIOWrapper, delimiter: str) -> Iterator[Row]:
        try:
            for row in csv.reader(text, delimiter=delimiter):
                if not row:
                    continue
                yield row
        except (UnicodeDecodeError, csv.Error) as e:
            raise InvalidContentError(location, str(e)) from e
        finally:
            text.close()

    def config(self) -> dict[str, Any]:
        return {
            "type": "csv",
            "delimiter": self.delimiter,
            "encoding": self.encoding,
            "timeout": self.timeout,
        }


def check_row_source_factory(factory: object) -> None:
    if not callable(getattr(factory, "open", None)):
        raise ConfigurationError(
            f"Row source factory must implement {RowSourceFactory.__module__}."
            f"{RowSourceFactory.__name__}; {type(factory).__name__} has no open()"
        )


def resolve_row_source(config: dict[str, Any] | None) -> RowSourceFactory:
    """Re-create a row source factory from the reference produced by ``config()``."""
    if not config:
        return CsvRowSourceFactory()
    if config.get("type") == "csv":
        return CsvRowSourceFactory(
            delimiter=config.get("delimiter"),
            encoding=config.get("encoding"),
            timeout=config.get("timeout", HTTP_TIMEOUT),
        )
    raise ConfigurationError(f"Unknown row source type: {config.get('type')!r}")
