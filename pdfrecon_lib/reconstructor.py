# --- pdfrecon_lib/reconstructor.py ---
"""
pdfrecon_lib/reconstructor.py: Contains the DocumentReconstructor, which merges
per-page content into the final ExtractionResult.
"""
import logging

from . import constants as C
from .exceptions import NoTextContentError
from .models import DocumentMetadata, ExtractionResult, Heading, ImageBlock
from .sources import name_from_identifier

log_reconstruct = logging.getLogger("pdfrecon.reconstruct")


class DocumentReconstructor:
    """
    Walks a list of PageContent objects to build the document-level result.

    Responsible for title inference, suppressing a leading block that merely
    repeats the title, and rejecting documents with no content at all.
    """

    def build(self, pages, metadata=None, identifier=None, outline=None) -> ExtractionResult:
        """Assembles the ExtractionResult, raising NoTextContentError if empty."""
        logging.getLogger("pdfrecon").info(
            "--- Reconstructing Document from %d Pages ---", len(pages)
        )
        metadata = metadata or DocumentMetadata()

        blocks = [block for page in pages for block in page.blocks]
        images = [image for page in pages for image in page.images]
        if not blocks and not images:
            raise NoTextContentError(
                "No text content found in PDF. The file may be scanned or image-only."
            )

        title = self.infer_title(metadata.title, blocks, identifier)
        content = []
        for page in pages:
            content.extend(page.items)
        content = self.suppress_duplicate_title(content, title)

        log_reconstruct.debug(
            "Built result: title='%s', %d content items (%d images)",
            title,
            len(content),
            sum(1 for item in content if isinstance(item, ImageBlock)),
        )
        return ExtractionResult(
            title=title,
            content=content,
            publish_date=metadata.publish_date,
            author=metadata.author,
            outline=list(outline or []),
        )

    @staticmethod
    def infer_title(metadata_title, blocks, identifier=None) -> str:
        """Picks the metadata title, else the first top-level heading, else a name."""
        if metadata_title and metadata_title.strip():
            log_reconstruct.debug("Using metadata title '%s'", metadata_title)
            return metadata_title.strip()

        headings = [b for b in blocks if isinstance(b, Heading)]
        if headings:
            best = min(b.level for b in headings)
            title = next(b.text for b in headings if b.level == best)
            log_reconstruct.debug("Inferred title from level %d heading: '%s'", best, title)
            return title

        name = name_from_identifier(identifier)
        log_reconstruct.debug("No headings found. Using %r", name or C.DEFAULT_TITLE)
        return name or C.DEFAULT_TITLE

    @staticmethod
    def suppress_duplicate_title(content, title):
        """Drops the first content item if it is a block repeating the title."""
        if not content or isinstance(content[0], ImageBlock):
            return content
        if content[0].text.strip() == title.strip():
            log_reconstruct.debug("Dropping leading block that repeats the title.")
            return content[1:]
        return content
