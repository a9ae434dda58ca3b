# --- pdfrecon_lib/segmenter.py ---
"""
pdfrecon_lib/segmenter.py: Contains the BlockSegmenter, which classifies ordered
lines into headings and paragraphs.
"""
import logging

from . import constants as C
from .config import LayoutConfig
from .models import Heading, Paragraph

log_structure = logging.getLogger("pdfrecon.structure")


def heading_level(font_size) -> int:
    """Maps a heading's font size to a level.

    Only levels 1 to 4 are produced; a Heading may carry any level from 1 to 6.
    """
    if font_size >= C.HEADING_LEVEL_1_SIZE:
        return 1
    if font_size > C.HEADING_LEVEL_2_SIZE:
        return 2
    if font_size > C.HEADING_LEVEL_3_SIZE:
        return 3
    return 4


def continue_paragraph(text, line_text) -> str:
    """Appends a line to paragraph text using the sentence/capital heuristic.

    Abbreviations and proper nouns mid-sentence get an extra space; that is the
    accepted cost of the heuristic.
    """
    if not text:
        return line_text
    if not line_text:
        return text
    if text.endswith(C.SENTENCE_PUNCTUATION) or line_text[0].isupper():
        return f"{text} {line_text}"
    if text[-1].isspace() and line_text[0].isspace():
        return text + line_text.lstrip()
    return text + line_text


class BlockSegmenter:
    """
    Walks lines top-to-bottom and emits Heading and Paragraph blocks.

    Args:
        config (LayoutConfig): Thresholds for headings and paragraph breaks.
    """

    def __init__(self, config: LayoutConfig = None):
        self.config = config or LayoutConfig()

    def is_heading(self, line) -> bool:
        return line.font_size > self.config.heading_threshold

    def segment(self, lines) -> list:
        """Turns an ordered list of Lines into an ordered list of Blocks."""
        blocks, paragraph, prev_y = [], None, None
        for line in lines:
            if self.is_heading(line):
                level = heading_level(line.font_size)
                log_structure.debug(
                    "Heading (level %d, %.1fpt): '%s'", level, line.font_size, line.text
                )
                blocks.append(Heading(line.text, level))
                paragraph, prev_y = None, line.y
                continue

            if self._starts_paragraph(line, paragraph, prev_y):
                paragraph = Paragraph(line.text, font_size=line.font_size)
                blocks.append(paragraph)
            else:
                paragraph.text = continue_paragraph(paragraph.text, line.text)
            prev_y = line.y

        log_structure.debug(
            "Segmented %d lines into %d blocks (%d headings)",
            len(lines),
            len(blocks),
            sum(1 for b in blocks if isinstance(b, Heading)),
        )
        return blocks

    def _starts_paragraph(self, line, paragraph, prev_y) -> bool:
        if paragraph is None or prev_y is None:
            return True
        if line.y - prev_y > self.config.paragraph_gap:
            return True
        size_jump = abs(line.font_size - paragraph.font_size) > self.config.font_size_delta
        return size_jump and line.font_size > self.config.heading_threshold
