# --- pdfrecon_lib/api.py ---
"""
pdfrecon_lib/api.py: Caller-facing entry points.

`extract_pdf` and `render_pdf_pages` load a PDF from a path, URL or buffer,
open it once, run one pipeline over it and destroy the handle, whatever the
outcome. Blocking callers can use the `_sync` variants.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from .config import AppConfig
from .engine import PdfEngine
from .extractor import PDFContentExtractor
from .renderer import PageRenderPipeline
from .sources import load_pdf_bytes

log = logging.getLogger("pdfrecon.api")


def parse_page_selection(pages_str) -> set | None:
    """Parses a page selection string (e.g., '1,3,5-7') into a set of integers."""
    if not pages_str or pages_str.strip().lower() == "all":
        return None
    pages = set()
    try:
        for p in pages_str.split(","):
            part = p.strip()
            if not part:
                continue
            if "-" in part:
                s, e = map(int, part.split("-"))
                pages.update(range(s, e + 1))
            else:
                pages.add(int(part))
        return pages or None
    except ValueError:
        log.error("Invalid page selection format: %s. Defaulting to 'all'.", pages_str)
        return None


def _clamp_pages(pages, num_pages):
    """Keeps only selected pages that exist in the document."""
    if not pages:
        return None
    valid = sorted(p for p in pages if 1 <= p <= num_pages)
    if len(valid) < len(pages):
        log.warning(
            "Ignoring %d selected pages outside 1..%d.", len(pages) - len(valid), num_pages
        )
    return valid


@asynccontextmanager
async def open_document(data, engine=None):
    """Opens a document and guarantees it is destroyed exactly once on exit."""
    engine = engine or PdfEngine()
    document = await engine.open(data)
    try:
        yield document
    finally:
        document.destroy()


async def extract_pdf(source, config: AppConfig = None, engine=None, pages=None, token=None):
    """
    Extracts headings, paragraphs, images, metadata and outline from a PDF.

    Args:
        source: Path, http(s) URL or bytes.
        config (AppConfig): Settings; defaults when omitted.
        engine (PdfEngine): Engine client; a new one when omitted.
        pages (set[int]): Optional 1-based page selection.
        token (CancellationToken): Optional cancellation flag.

    Returns:
        ExtractionResult: The structured document.

    Raises:
        PdfReconError: For document-fatal conditions (unreadable source, file
            too large, not a PDF, password protected, no content).
    """
    config = config or AppConfig()
    data, identifier = await asyncio.to_thread(load_pdf_bytes, source, config.limits)
    async with open_document(data, engine) as document:
        extractor = PDFContentExtractor(config.layout, token=token)
        selection = _clamp_pages(pages, document.num_pages)
        result = await extractor.extract(document, identifier, selection)
    log.info("Extraction finished: '%s' (%d items).", result.title, len(result.content))
    return result


async def render_pdf_pages(
    source,
    config: AppConfig = None,
    engine=None,
    pages=None,
    scale=None,
    progress=None,
    token=None,
    surface_factory=None,
):
    """
    Renders pages of a PDF to base64 JPEG images.

    Only document-fatal conditions raise; every requested page gets an entry
    in the result, either an image or an error.
    """
    config = config or AppConfig()
    data, _identifier = await asyncio.to_thread(load_pdf_bytes, source, config.limits)
    try:
        async with open_document(data, engine) as document:
            pipeline = PageRenderPipeline(
                config.render, progress=progress, token=token, surface_factory=surface_factory
            )
            return await pipeline.render(document, pages, scale)
    finally:
        if progress is not None:
            progress.close()


def extract_pdf_sync(source, **kwargs):
    """Blocking wrapper around extract_pdf."""
    return asyncio.run(extract_pdf(source, **kwargs))


def render_pdf_pages_sync(source, **kwargs):
    """Blocking wrapper around render_pdf_pages."""
    return asyncio.run(render_pdf_pages(source, **kwargs))
