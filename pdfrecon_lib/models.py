# --- pdfrecon_lib/models.py ---
"""
pdfrecon_lib/models.py: Data models for glyph geometry, structural blocks and
pipeline results.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Union


# --- GLYPH GEOMETRY (PHYSICAL) ---
@dataclass(frozen=True)
class GlyphRun:
    """One positioned run of text as reported by the parsing engine.

    Coordinates use the PDF convention: origin at the bottom-left corner.
    """

    text: str
    x: float
    y_bottom: float
    width: float
    font_size: float


@dataclass(frozen=True)
class NormalizedGlyphRun:
    """A GlyphRun re-expressed with a top-left origin (y grows downward)."""

    text: str
    x: float
    y_top: float
    width: float
    font_size: float

    @property
    def x_end(self) -> float:
        return self.x + self.width

    @classmethod
    def from_run(cls, run: GlyphRun, page_height: float) -> "NormalizedGlyphRun":
        return cls(run.text, run.x, page_height - run.y_bottom, run.width, run.font_size)


@dataclass
class Line:
    """A cluster of runs judged to share a text baseline."""

    text: str
    y: float
    x: float
    font_size: float
    runs: List[NormalizedGlyphRun] = field(default_factory=list, repr=False)


@dataclass(frozen=True)
class Viewport:
    """Page dimensions at a given render scale."""

    width: float
    height: float
    scale: float = 1.0


# --- DOCUMENT MODEL (LOGICAL) ---
@dataclass
class Heading:
    """A standalone heading block (level 1 to 6). Never merged with neighbouring lines."""

    text: str
    level: int

    def to_dict(self) -> dict:
        return {"type": "heading", "text": self.text, "level": self.level}


@dataclass
class Paragraph:
    """A paragraph block accumulating one or more lines."""

    text: str
    font_size: float = field(default=0.0, compare=False, repr=False)

    def to_dict(self) -> dict:
        return {"type": "paragraph", "text": self.text}


@dataclass
class ImageBlock:
    """An image found on a page, carried as an embeddable data URI."""

    src: str
    alt: str
    page_num: int
    width: int
    height: int

    def to_dict(self) -> dict:
        return {
            "type": "image",
            "src": self.src,
            "alt": self.alt,
            "pageNum": self.page_num,
            "width": self.width,
            "height": self.height,
        }


Block = Union[Heading, Paragraph]
ContentItem = Union[Heading, Paragraph, ImageBlock]


@dataclass
class PageContent:
    """The reconstructed content of one page: text blocks first, then images."""

    page_num: int
    blocks: List[Block] = field(default_factory=list)
    images: List[ImageBlock] = field(default_factory=list)

    @property
    def items(self) -> List[ContentItem]:
        return [*self.blocks, *self.images]


@dataclass
class OutlineEntry:
    """A single bookmark from the document outline."""

    title: str
    level: int
    page_num: Optional[int] = None

    def to_dict(self) -> dict:
        return {"title": self.title, "level": self.level, "pageNum": self.page_num}


@dataclass
class DocumentMetadata:
    """Values taken from the PDF info dictionary, already cleaned."""

    title: str = ""
    author: str = ""
    publish_date: str = ""


@dataclass
class ExtractionResult:
    """The structured-extraction output for a whole document."""

    title: str
    content: List[ContentItem]
    publish_date: str = ""
    author: str = ""
    outline: List[OutlineEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "content": [item.to_dict() for item in self.content],
            "publishDate": self.publish_date,
            "author": self.author,
            "outline": [entry.to_dict() for entry in self.outline],
        }


# --- RENDER PIPELINE RESULTS ---
@dataclass
class PageRenderResult:
    """Outcome for one page: either an encoded image or an error message."""

    page_num: int
    base64: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        if self.error is not None:
            return {"pageNum": self.page_num, "error": self.error}
        return {
            "pageNum": self.page_num,
            "base64": self.base64,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class RenderResult:
    """Aggregate output of the render pipeline, total over requested pages."""

    success: bool
    images: List[PageRenderResult]
    total_pages: int
    cancelled: bool = False

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "images": [image.to_dict() for image in self.images],
            "totalPages": self.total_pages,
        }


@dataclass(frozen=True)
class RenderProgress:
    """A progress event emitted after each page, successful or not."""

    current: int
    total: int
