"""
pdfrecon_lib/exceptions.py: Exception hierarchy for document and page failures.

Document-fatal errors abort a whole request. Page-local errors are caught by the
render pipeline and recorded against the page that produced them.
"""


class PdfReconError(RuntimeError):
    """Base class for all pdfrecon errors."""


class ConfigError(PdfReconError):
    """Raised when a configuration file holds an unusable value."""


# --- DOCUMENT-FATAL ---
class SourceFetchError(PdfReconError):
    """Raised when the PDF bytes cannot be read from a path or URL."""


class FileTooLargeError(PdfReconError):
    """Raised when the input exceeds the configured maximum size."""

    def __init__(self, size, max_size):
        self.size, self.max_size = size, max_size
        super().__init__(
            f"PDF file is too large ({size / 1024 / 1024:.1f} MB). "
            f"Maximum size: {max_size / 1024 / 1024:.0f} MB."
        )


class InvalidPdfError(PdfReconError):
    """Raised when the input does not look like a PDF at all."""


class DocumentOpenError(PdfReconError):
    """Raised when the parsing engine cannot open the document."""


class PasswordProtectedError(DocumentOpenError):
    """Raised for encrypted documents that need a password."""


class NoTextContentError(PdfReconError):
    """Raised when no page yields text and no image exists (scanned PDF)."""


class DocumentClosedError(PdfReconError):
    """Raised when a document or page is used after the document was destroyed."""


# --- PAGE-LOCAL ---
class PageRenderError(PdfReconError):
    """Raised when a single page cannot be acquired or rendered."""

    def __init__(self, page_num, message):
        self.page_num = page_num
        super().__init__(message)


class RenderTimeoutError(PageRenderError):
    """Raised when a page render exceeds its deadline."""

    def __init__(self, page_num, timeout):
        self.timeout = timeout
        super().__init__(
            page_num, f"timeout after {timeout:g} seconds rendering page {page_num}"
        )


class RenderCancelledError(PageRenderError):
    """Raised by a render task that was cancelled before it completed."""

    def __init__(self, page_num):
        super().__init__(page_num, f"rendering of page {page_num} was cancelled")
