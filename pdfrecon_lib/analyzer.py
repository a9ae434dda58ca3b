# --- pdfrecon_lib/analyzer.py ---
"""
pdfrecon_lib/analyzer.py: Contains the PageTextAnalyzer, which turns a page's
unordered glyph runs into text lines in reading order.
"""
import logging

from .config import LayoutConfig
from .models import Line, NormalizedGlyphRun

log_layout = logging.getLogger("pdfrecon.layout")


class PageTextAnalyzer:
    """
    Normalizes, sorts and clusters glyph runs into Lines.

    All work is synchronous and depends only on the run coordinates and the
    configured tolerances, so equal input always yields equal output no matter
    how the runs were ordered on entry.
    """

    def __init__(self, config: LayoutConfig = None):
        self.config = config or LayoutConfig()

    def analyze(self, runs, page_height) -> list[Line]:
        """Runs the full chain: normalize, sort, cluster and order lines."""
        normalized = self.normalize_runs(runs, page_height)
        lines = self.cluster_lines(self.sort_runs(normalized))
        ordered = self.order_lines(lines)
        log_layout.debug(
            "Clustered %d runs into %d lines (page height %.1f)",
            len(normalized),
            len(ordered),
            page_height,
        )
        return ordered

    @staticmethod
    def normalize_runs(runs, page_height) -> list[NormalizedGlyphRun]:
        """Drops empty runs and flips y so that it grows downward."""
        return [
            NormalizedGlyphRun.from_run(run, page_height)
            for run in runs
            if run.text and run.text.strip()
        ]

    @staticmethod
    def sort_runs(runs):
        """Sorts top-to-bottom, ties broken left-to-right."""
        return sorted(runs, key=lambda r: (r.y_top, r.x, r.text))

    def cluster_lines(self, sorted_runs) -> list[Line]:
        """Groups sorted runs whose y lies within tolerance of the open line."""
        groups, anchor_y = [], None
        for run in sorted_runs:
            if groups and abs(run.y_top - anchor_y) <= self.config.y_tolerance:
                groups[-1].append(run)
            else:
                groups.append([run])
                anchor_y = run.y_top
        lines = [self._build_line(group) for group in groups]
        return [line for line in lines if line.text]

    @staticmethod
    def order_lines(lines):
        """Sorts lines top-to-bottom (clustering may emit them in scan order)."""
        return sorted(lines, key=lambda line: (line.y, line.x))

    def _build_line(self, group) -> Line:
        """Concatenates a run cluster left-to-right into a single Line."""
        runs = sorted(group, key=lambda r: (r.x, r.text))
        font_size = max(r.font_size for r in runs)
        return Line(
            text=self.join_runs(runs, font_size).strip(),
            y=group[0].y_top,
            x=runs[0].x,
            font_size=font_size,
            runs=runs,
        )

    def join_runs(self, runs, font_size) -> str:
        """Joins x-sorted runs, inserting a space at inferred word boundaries."""
        gap_thresh = self.config.word_gap_ratio * font_size
        parts, prev = [], None
        for run in runs:
            if prev is not None:
                gap = run.x - prev.x_end
                at_space = prev.text[-1].isspace() or run.text[0].isspace()
                if gap > gap_thresh and not at_space:
                    parts.append(" ")
            parts.append(run.text)
            prev = run
        return "".join(parts)
