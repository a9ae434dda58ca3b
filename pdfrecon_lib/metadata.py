# --- pdfrecon_lib/metadata.py ---
"""
pdfrecon_lib/metadata.py: Cleans values from the PDF info dictionary and
flattens the document outline.
"""
import logging
import re
from datetime import date

from pdfminer.pdftypes import resolve1
from pdfminer.psparser import PSLiteral
from pdfminer.utils import decode_text

from . import constants as C
from .models import DocumentMetadata, OutlineEntry

log = logging.getLogger("pdfrecon.reconstruct")

_PDF_DATE_RE = re.compile(r"D:(\d{4})(\d{2})(\d{2})")


def decode_value(value) -> str:
    """Decodes a raw info dictionary value (bytes, literal or str) to text."""
    value = resolve1(value)
    if value is None:
        return ""
    if isinstance(value, bytes):
        return decode_text(value).strip()
    if isinstance(value, PSLiteral):
        name = value.name
        return (name.decode("latin-1") if isinstance(name, bytes) else name).strip()
    return str(value).strip()


def parse_pdf_date(value) -> str:
    """Converts a PDF date such as D:20231201120000+02'00 to YYYY-MM-DD."""
    if not value:
        return ""
    match = _PDF_DATE_RE.search(value)
    if match:
        year, month, day = match.groups()
        return f"{year}-{month}-{day}"
    try:
        return date.fromisoformat(value.strip()[:10]).isoformat()
    except ValueError:
        log.debug("Could not parse PDF date %r", value)
        return ""


def is_anonymous_author(author) -> bool:
    author = (author or "").strip()
    return not author or author.lower() in C.ANONYMOUS_AUTHORS


def clean_author(author) -> str:
    """Returns the trimmed author, or '' for empty and anonymous values."""
    if is_anonymous_author(author):
        return ""
    return author.strip()


def should_ignore_metadata_title(title) -> bool:
    """True for titles too short or too generic to describe the document."""
    title = (title or "").strip()
    return len(title) < 3 or title.lower() in C.IGNORED_METADATA_TITLES


def metadata_from_info(info) -> DocumentMetadata:
    """Builds DocumentMetadata from a merged PDF info dictionary."""
    info = info or {}
    title = decode_value(info.get("Title"))
    if should_ignore_metadata_title(title):
        if title:
            log.debug("Ignoring generic metadata title '%s'", title)
        title = ""
    publish_date = parse_pdf_date(decode_value(info.get("CreationDate")))
    if not publish_date:
        publish_date = parse_pdf_date(decode_value(info.get("ModDate")))
    return DocumentMetadata(
        title=title,
        author=clean_author(decode_value(info.get("Author"))),
        publish_date=publish_date,
    )


def flatten_outline(raw_outlines, page_lookup=None) -> list[OutlineEntry]:
    """
    Converts pdfminer outline tuples (level, title, dest, action, se) into
    OutlineEntries.

    Args:
        raw_outlines: Iterable as produced by PDFDocument.get_outlines().
        page_lookup: Optional callable mapping (dest, action) to a 1-based page
            number or None.
    """
    entries = []
    for level, title, dest, action, _se in raw_outlines:
        text = decode_value(title) if not isinstance(title, str) else title.strip()
        if not text:
            continue
        page_num = page_lookup(dest, action) if page_lookup else None
        entries.append(OutlineEntry(title=text, level=level, page_num=page_num))
    return entries
