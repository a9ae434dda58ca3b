# --- pdfrecon_lib/sources.py ---
"""
pdfrecon_lib/sources.py: Obtains PDF bytes from a local path, an http(s) URL or
an in-memory buffer, enforcing the size limit and the %PDF header check.
"""
import logging
import os
from urllib.parse import unquote, urlparse

import requests

from . import constants as C
from .exceptions import FileTooLargeError, InvalidPdfError, SourceFetchError

log = logging.getLogger("pdfrecon.source")


def is_url(source) -> bool:
    return isinstance(source, str) and urlparse(source).scheme in ("http", "https")


def name_from_identifier(identifier) -> str:
    """Derives a readable document name from a file path or URL."""
    if not identifier:
        return ""
    path = urlparse(identifier).path if is_url(identifier) else identifier
    name = unquote(os.path.basename(path.rstrip("/\\")))
    if name.lower().endswith(".pdf"):
        name = name[:-4]
    return name.strip()


def check_pdf_bytes(data, max_size=C.MAX_FILE_SIZE):
    """Raises if the buffer is empty, too large or lacks the %PDF header."""
    if not data:
        raise InvalidPdfError("PDF file is empty.")
    if len(data) > max_size:
        raise FileTooLargeError(len(data), max_size)
    if not data[:1024].lstrip().startswith(C.PDF_HEADER):
        raise InvalidPdfError("File does not appear to be a PDF (missing %PDF header).")


def fetch_url(url, max_size=C.MAX_FILE_SIZE, timeout=C.FETCH_TIMEOUT) -> bytes:
    """Downloads a PDF, aborting as soon as it grows beyond max_size."""
    log.info("Fetching PDF from %s", url)
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            length = response.headers.get("Content-Length")
            if length and length.isdigit() and int(length) > max_size:
                raise FileTooLargeError(int(length), max_size)
            chunks, received = [], 0
            for chunk in response.iter_content(chunk_size=64 * 1024):
                received += len(chunk)
                if received > max_size:
                    raise FileTooLargeError(received, max_size)
                chunks.append(chunk)
    except requests.exceptions.RequestException as e:
        raise SourceFetchError(f"Failed to fetch PDF: {e}") from e
    log.debug("Fetched %d bytes from %s", received, url)
    return b"".join(chunks)


def read_path(path, max_size=C.MAX_FILE_SIZE) -> bytes:
    if not os.path.exists(path):
        raise SourceFetchError(f"PDF file not found: {path}")
    size = os.path.getsize(path)
    if size > max_size:
        raise FileTooLargeError(size, max_size)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise SourceFetchError(f"Could not read {path}: {e}") from e


def load_pdf_bytes(source, limits=None, identifier=None):
    """
    Loads a PDF from any supported source.

    Args:
        source: A filesystem path, an http(s) URL, or a bytes-like buffer.
        limits (LimitsConfig): Optional size and timeout limits.
        identifier (str): Name to report for in-memory buffers.

    Returns:
        tuple[bytes, str]: The validated data and an identifier (path or URL).
    """
    max_size = limits.max_file_size if limits else C.MAX_FILE_SIZE
    timeout = limits.fetch_timeout if limits else C.FETCH_TIMEOUT

    if isinstance(source, (bytes, bytearray, memoryview)):
        data, identifier = bytes(source), identifier or ""
    elif is_url(source):
        data, identifier = fetch_url(source, max_size, timeout), identifier or source
    elif isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        data, identifier = read_path(path, max_size), identifier or path
    else:
        raise TypeError(f"Unsupported PDF source type: {type(source).__name__}")

    check_pdf_bytes(data, max_size)
    log.info("Loaded PDF '%s' (%.1f KB)", identifier or "<buffer>", len(data) / 1024)
    return data, identifier
