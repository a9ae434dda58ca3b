# --- pdfrecon_lib/extractor.py ---
"""
pdfrecon_lib/extractor.py: Contains the PDFContentExtractor, the per-page
loop that drives structured extraction over an opened document.

This class orchestrates the pipeline from glyph runs to an ExtractionResult:
1. Glyph runs are clustered into ordered lines (PageTextAnalyzer).
2. Lines are segmented into headings and paragraphs (BlockSegmenter).
3. Page images are resolved into data URIs (ImageResolver).
4. Pages are merged and the title is inferred (DocumentReconstructor).
"""
import logging

from .analyzer import PageTextAnalyzer
from .config import LayoutConfig
from .exceptions import DocumentClosedError
from .images import ImageResolver
from .metadata import metadata_from_info
from .models import DocumentMetadata, PageContent
from .reconstructor import DocumentReconstructor
from .segmenter import BlockSegmenter

log = logging.getLogger("pdfrecon")
log_layout = logging.getLogger("pdfrecon.layout")


class PDFContentExtractor:
    """
    Extracts structured content from an opened PdfDocument.

    Args:
        config (LayoutConfig): Layout heuristics.
        token (CancellationToken): Optional; checked before each page.
    """

    def __init__(self, config: LayoutConfig = None, token=None):
        self.config = config or LayoutConfig()
        self.token = token
        self.analyzer = PageTextAnalyzer(self.config)
        self.segmenter = BlockSegmenter(self.config)
        self.image_resolver = ImageResolver(self.config.min_image_size)
        self.reconstructor = DocumentReconstructor()

    async def extract_page(self, page) -> PageContent:
        """Runs the layout engine over a single acquired page."""
        try:
            runs = await page.get_text_content()
        except DocumentClosedError:
            raise
        except Exception as e:
            log.warning("Failed to read text of page %d: %s", page.page_num, e)
            runs = []
        height = page.get_viewport(1.0).height
        blocks = self.segmenter.segment(self.analyzer.analyze(runs, height))
        try:
            elements = await page.get_images()
        except DocumentClosedError:
            raise
        except Exception as e:
            log.warning("Failed to read images of page %d: %s", page.page_num, e)
            elements = []
        images = self.image_resolver.resolve(elements, page.page_num)
        log_layout.debug(
            "Page %d: %d runs -> %d blocks, %d images",
            page.page_num,
            len(runs),
            len(blocks),
            len(images),
        )
        return PageContent(page.page_num, blocks, images)

    async def extract_pages(self, document, pages=None) -> list[PageContent]:
        """Extracts each requested page in ascending order, cleaning up as it goes."""
        page_nums = sorted(pages) if pages is not None else range(1, document.num_pages + 1)
        results = []
        for page_num in page_nums:
            if self.token is not None and self.token.cancelled:
                log.warning("Extraction cancelled before page %d.", page_num)
                break
            log.info("Extracting page %d/%d", page_num, document.num_pages)
            page = await document.get_page(page_num)
            try:
                results.append(await self.extract_page(page))
            finally:
                page.cleanup()
        return results

    async def read_metadata(self, document) -> DocumentMetadata:
        try:
            return metadata_from_info(await document.metadata())
        except Exception as e:
            log.warning("Failed to extract PDF metadata: %s", e)
            return DocumentMetadata()

    async def read_outline(self, document) -> list:
        try:
            entries = await document.outline()
        except Exception as e:
            log.warning("Failed to extract outline: %s", e)
            return []
        if entries:
            log.info("Outline extracted (%d entries).", len(entries))
        return entries

    async def extract(self, document, identifier=None, pages=None):
        """Runs the whole extraction and returns an ExtractionResult."""
        metadata = await self.read_metadata(document)
        outline = await self.read_outline(document)
        page_contents = await self.extract_pages(document, pages)
        return self.reconstructor.build(page_contents, metadata, identifier, outline)
