# --- pdfrecon_lib/engine.py ---
"""
pdfrecon_lib/engine.py: The PDF engine client.

pdfminer.six parses the document and provides text runs, images, metadata and
the outline. PyMuPDF rasterizes pages. Both libraries are blocking, so every
call runs on a single-worker thread pool owned by the document. That pool
serializes all engine work for one document: an abandoned render can never
overlap another call on the same handle.
"""
import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO

import fitz
from PIL import Image
from pdfminer.converter import PDFPageAggregator
from pdfminer.layout import LAParams, LTAnno, LTChar, LTTextLine
from pdfminer.pdfdocument import (
    PDFDestinationNotFound,
    PDFDocument,
    PDFNoOutlines,
    PDFPasswordIncorrect,
)
from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.pdfparser import PDFParser
from pdfminer.pdftypes import PDFObjRef, resolve1
from pdfminer.psparser import PSException, PSLiteral

from .exceptions import (
    DocumentClosedError,
    DocumentOpenError,
    PasswordProtectedError,
    RenderCancelledError,
)
from .images import find_images_recursively
from .metadata import flatten_outline
from .models import GlyphRun, Viewport

log_engine = logging.getLogger("pdfrecon.engine")


def _find_elements_by_type(layout_obj, element_type):
    """Recursively finds all layout elements of a given type."""
    elements = []
    if isinstance(layout_obj, element_type):
        elements.append(layout_obj)
    if hasattr(layout_obj, "_objs"):
        for child in layout_obj:
            elements.extend(_find_elements_by_type(child, element_type))
    return elements


def runs_from_line(line, origin=(0.0, 0.0)):
    """
    Splits a pdfminer LTTextLine into GlyphRuns.

    A run is a maximal sequence of LTChar objects sharing font and size. Runs
    break at LTAnno objects, which pdfminer inserts where it inferred a space;
    spacing is decided later from geometry alone.
    """
    ox, oy = origin
    runs, chars = [], []

    def flush():
        if chars:
            runs.append(
                GlyphRun(
                    text="".join(c.get_text() for c in chars),
                    x=chars[0].x0 - ox,
                    y_bottom=chars[0].y0 - oy,
                    width=chars[-1].x1 - chars[0].x0,
                    font_size=max(c.size for c in chars),
                )
            )
            chars.clear()

    for obj in line:
        if isinstance(obj, LTAnno):
            flush()
        elif isinstance(obj, LTChar):
            if chars and (obj.fontname, round(obj.size, 1)) != (
                chars[-1].fontname,
                round(chars[-1].size, 1),
            ):
                flush()
            chars.append(obj)
    flush()
    return runs


class RasterSurface:
    """A raster target sized to a viewport. Holds one rendered pixmap."""

    def __init__(self, width, height):
        self.width, self.height = int(width), int(height)
        self.pixmap = None

    def attach(self, pixmap):
        self.pixmap = pixmap
        self.width, self.height = pixmap.width, pixmap.height

    def to_image(self):
        if self.pixmap is None:
            raise ValueError("Surface holds no rendered pixels.")
        pix = self.pixmap
        size = (pix.width, pix.height)
        return Image.frombytes("RGB", size, pix.samples, "raw", "RGB", pix.stride)

    def to_jpeg(self, quality) -> bytes:
        buffer = BytesIO()
        self.to_image().save(buffer, "JPEG", quality=quality)
        return buffer.getvalue()

    def release(self):
        """Drops the pixel buffer and zeroes the dimensions."""
        self.pixmap = None
        self.width = self.height = 0


class RenderTask:
    """
    Handle for one in-flight page render.

    `promise` is an asyncio future resolving to the surface once rendering
    completes. `started` resolves when the worker picks the job up. `cancel()`
    asks the worker to abandon the job; a job that has not started yet resolves
    with RenderCancelledError as soon as it is picked up, one that is inside
    the rasterizer finishes its current call first.
    """

    def __init__(self, promise, cancel_event, page_num, started=None):
        self.promise = promise
        self.started = started
        self.page_num = page_num
        self._cancel_event = cancel_event

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self):
        if not self._cancel_event.is_set():
            log_engine.debug("Cancelling render of page %d", self.page_num)
            self._cancel_event.set()

    async def wait_started(self, timeout) -> bool:
        """Waits up to `timeout` seconds for the worker to start the job. Never raises."""
        if self.started is None:
            return True
        done, _ = await asyncio.wait(
            {self.started, self.promise}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
        return bool(done)

    async def wait_settled(self, timeout) -> bool:
        """Waits up to `timeout` seconds for the task to finish. Never raises."""
        done, _ = await asyncio.wait({self.promise}, timeout=timeout)
        if not done:
            return False
        if not self.promise.cancelled():
            self.promise.exception()  # mark retrieved
        return True


class PdfPage:
    """One page of an open PdfDocument. Layout results are cached until cleanup()."""

    def __init__(self, document, page_num, pdf_page):
        self.document = document
        self.page_num = page_num
        self._pdf_page = pdf_page
        self._layout = None

    def _check_open(self):
        if self.document.closed:
            raise DocumentClosedError(
                f"Page {self.page_num} used after its document was destroyed."
            )

    def get_viewport(self, scale=1.0) -> Viewport:
        """Returns the page size at `scale`, honouring the page rotation."""
        self._check_open()
        x0, y0, x1, y1 = self._pdf_page.cropbox or self._pdf_page.mediabox
        width, height = abs(x1 - x0), abs(y1 - y0)
        if (self._pdf_page.rotate or 0) % 180:
            width, height = height, width
        return Viewport(width * scale, height * scale, scale)

    def _analyze_layout(self):
        if self._layout is None:
            rsrcmgr = PDFResourceManager()
            device = PDFPageAggregator(rsrcmgr, laparams=self.document.laparams)
            interpreter = PDFPageInterpreter(rsrcmgr, device)
            interpreter.process_page(self._pdf_page)
            self._layout = device.get_result()
        return self._layout

    def _collect_runs(self):
        layout = self._analyze_layout()
        origin = (layout.x0, layout.y0)
        runs = []
        for line in _find_elements_by_type(layout, LTTextLine):
            runs.extend(runs_from_line(line, origin))
        return runs

    async def get_text_content(self) -> list[GlyphRun]:
        """Returns the page's glyph runs in content-stream order."""
        self._check_open()
        runs = await self.document.run(self._collect_runs)
        log_engine.debug("Page %d: %d glyph runs", self.page_num, len(runs))
        return runs

    async def get_images(self) -> list:
        """Returns every LTImage on the page, including those nested in figures."""
        self._check_open()
        layout = await self.document.run(self._analyze_layout)
        return list(find_images_recursively(layout))

    def render(self, surface, viewport) -> RenderTask:
        """Schedules rasterization of the page into `surface` at viewport.scale."""
        self._check_open()
        cancel_event = threading.Event()
        page_num = self.page_num
        loop = asyncio.get_running_loop()
        started = loop.create_future()

        def mark_started():
            if not started.done():
                started.set_result(None)

        def job():
            loop.call_soon_threadsafe(mark_started)
            if cancel_event.is_set():
                raise RenderCancelledError(page_num)
            fitz_page = self.document.fitz_document()[page_num - 1]
            matrix = fitz.Matrix(viewport.scale, viewport.scale)
            pixmap = fitz_page.get_pixmap(matrix=matrix, alpha=False)
            if cancel_event.is_set():
                raise RenderCancelledError(page_num)
            surface.attach(pixmap)
            return surface

        promise = self.document.run_future(job)
        return RenderTask(promise, cancel_event, page_num, started)

    def cleanup(self):
        """Frees cached layout objects. The page may still be used afterwards."""
        self._layout = None


class PdfDocument:
    """An opened PDF. Must be destroyed exactly once with destroy()."""

    def __init__(self, data, laparams=None):
        self.laparams = laparams or LAParams()
        self._data = data
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pdfrecon-engine"
        )
        self._doc = None
        self._pages = []
        self._page_index = {}
        self._fitz_doc = None
        self.closed = False

    # --- worker-side helpers ---
    def _open(self):
        try:
            parser = PDFParser(BytesIO(self._data))
            self._doc = PDFDocument(parser)
            self._pages = list(PDFPage.create_pages(self._doc))
        except PDFPasswordIncorrect as e:
            raise PasswordProtectedError(
                "PDF is password-protected. Please remove the password and try again."
            ) from e
        except PSException as e:
            raise DocumentOpenError(f"Failed to open PDF: {e}") from e
        if not self._pages:
            raise DocumentOpenError("PDF has no pages.")
        self._page_index = {page.pageid: i for i, page in enumerate(self._pages)}

    def fitz_document(self):
        """Opens the PyMuPDF view of the same bytes on first use (worker thread)."""
        if self._fitz_doc is None:
            try:
                self._fitz_doc = fitz.open(stream=self._data, filetype="pdf")
            except RuntimeError as e:
                raise DocumentOpenError(f"Rasterizer failed to open PDF: {e}") from e
        return self._fitz_doc

    def _close_handles(self):
        if self._fitz_doc is not None:
            self._fitz_doc.close()
        self._fitz_doc = None
        self._doc, self._pages, self._data = None, [], None

    # --- event-loop side ---
    def run_future(self, fn, *args):
        """Submits `fn` to the document's worker, returning an asyncio future."""
        if self.closed:
            raise DocumentClosedError("Document has been destroyed.")
        return asyncio.wrap_future(
            self._executor.submit(fn, *args), loop=asyncio.get_running_loop()
        )

    async def run(self, fn, *args):
        return await self.run_future(fn, *args)

    @property
    def num_pages(self) -> int:
        return len(self._pages)

    async def get_page(self, page_num) -> PdfPage:
        """Returns the 1-based page `page_num`."""
        if self.closed:
            raise DocumentClosedError("Document has been destroyed.")
        if not 1 <= page_num <= self.num_pages:
            raise IndexError(f"Page {page_num} out of range 1..{self.num_pages}")
        return PdfPage(self, page_num, self._pages[page_num - 1])

    def _merged_info(self):
        merged = {}
        for info in self._doc.info:
            merged.update(resolve1(info) or {})
        return merged

    async def metadata(self) -> dict:
        """Returns the merged, raw info dictionary."""
        return await self.run(self._merged_info)

    def _page_for_dest(self, dest, action):
        if dest is None and action is not None:
            action = resolve1(action)
            if isinstance(action, dict):
                dest = action.get("D")
        dest = resolve1(dest)
        if isinstance(dest, (bytes, str, PSLiteral)):
            name = dest.name if isinstance(dest, PSLiteral) else dest
            try:
                dest = resolve1(self._doc.get_dest(name))
            except (KeyError, PDFDestinationNotFound):
                return None
        if isinstance(dest, dict):
            dest = resolve1(dest.get("D"))
        if isinstance(dest, list) and dest and isinstance(dest[0], PDFObjRef):
            index = self._page_index.get(dest[0].objid)
            return index + 1 if index is not None else None
        return None

    def _read_outline(self):
        try:
            return flatten_outline(self._doc.get_outlines(), self._page_for_dest)
        except PDFNoOutlines:
            return []

    async def outline(self) -> list:
        """Returns the document outline as a flat list of OutlineEntries."""
        return await self.run(self._read_outline)

    def destroy(self):
        """Releases both engines. Later calls on this document or its pages fail."""
        if self.closed:
            log_engine.warning("Document destroyed more than once; ignoring.")
            return
        self.closed = True
        # Runs after any job still on the worker, so handles never close mid-call.
        self._executor.submit(self._close_handles)
        self._executor.shutdown(wait=False)
        log_engine.debug("Document destroyed.")


class PdfEngine:
    """Opens PdfDocuments. Constructed explicitly and passed to the pipelines."""

    def __init__(self, laparams=None):
        self.laparams = laparams

    async def open(self, data) -> PdfDocument:
        document = PdfDocument(data, self.laparams)
        try:
            await document.run(document._open)
        except BaseException:
            document.destroy()
            raise
        log_engine.info("Opened PDF with %d pages.", document.num_pages)
        return document
