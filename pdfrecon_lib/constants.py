"""
pdfrecon_lib/constants.py: Default heuristics, deadlines and limits.

The layout values are empirically tuned, not derived from the PDF format. They
are defaults only; see config.py for overriding them from an INI file.
"""

# --- LAYOUT HEURISTICS ---
Y_TOLERANCE = 3.0  # max vertical distance (pt) between runs of one line
WORD_GAP_RATIO = 0.3  # gap > ratio * font size means a word boundary
PARAGRAPH_GAP = 15.0  # vertical gap (pt) that starts a new paragraph
HEADING_THRESHOLD = 14.0  # lines above this font size are headings
FONT_SIZE_DELTA = 2.0
MIN_IMAGE_SIZE = 0  # images narrower/shorter than this are skipped

# Heading levels by font size: level 1 from 20pt inclusive, then strictly above.
HEADING_LEVEL_1_SIZE = 20.0
HEADING_LEVEL_2_SIZE = 16.0
HEADING_LEVEL_3_SIZE = 14.0

SENTENCE_PUNCTUATION = (".", "!", "?", ":", ";")

# --- RENDERING ---
RENDER_SCALE = 2.0
JPEG_QUALITY = 92
FIRST_PAGE_RENDER_TIMEOUT = 10 * 60.0  # seconds; absorbs one-time engine warmup
PAGE_RENDER_TIMEOUT = 5 * 60.0
CANCEL_GRACE = 5.0  # seconds to wait for a cancelled render to acknowledge
YIELD_EVERY = 10  # pages between scheduler pauses
YIELD_PAUSE = 0.1

# --- INPUT LIMITS ---
MAX_FILE_SIZE = 500 * 1024 * 1024
FETCH_TIMEOUT = 10 * 60.0
PDF_HEADER = b"%PDF"

# --- METADATA ---
IGNORED_METADATA_TITLES = {"anonymous", "(anonymous)", "untitled", "untitled pdf"}
ANONYMOUS_AUTHORS = {
    "anonymous",
    "(anonymous)",
    "anonym",
    "(anonym)",
    "anonyme",
    "(anonyme)",
    "anónimo",
    "(anónimo)",
    "anonimo",
    "(anonimo)",
    "anônimo",
    "(anônimo)",
    "анонимный",
    "(анонимный)",
    "анонімний",
    "(анонімний)",
    "анонім",
    "匿名",
    "(匿名)",
    "익명",
    "(익명)",
    "unknown",
}
DEFAULT_TITLE = "Untitled"
