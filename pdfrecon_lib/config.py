# --- pdfrecon_lib/config.py ---
"""
pdfrecon_lib/config.py: Loads heuristic constants and deadlines from an INI file.
"""
import configparser
import logging
from dataclasses import asdict, dataclass, field, fields

from . import constants as C
from .exceptions import ConfigError

log = logging.getLogger("pdfrecon.config")


@dataclass
class LayoutConfig:
    """Tunable thresholds used by the layout reconstruction engine."""

    y_tolerance: float = C.Y_TOLERANCE
    word_gap_ratio: float = C.WORD_GAP_RATIO
    paragraph_gap: float = C.PARAGRAPH_GAP
    heading_threshold: float = C.HEADING_THRESHOLD
    font_size_delta: float = C.FONT_SIZE_DELTA
    min_image_size: int = C.MIN_IMAGE_SIZE


@dataclass
class RenderConfig:
    """Scale, encoding quality and per-page deadlines for the render pipeline."""

    scale: float = C.RENDER_SCALE
    jpeg_quality: int = C.JPEG_QUALITY
    first_page_timeout: float = C.FIRST_PAGE_RENDER_TIMEOUT
    page_timeout: float = C.PAGE_RENDER_TIMEOUT
    cancel_grace: float = C.CANCEL_GRACE
    yield_every: int = C.YIELD_EVERY
    yield_pause: float = C.YIELD_PAUSE


@dataclass
class LimitsConfig:
    """Checks applied at the edge, before a document is opened."""

    max_file_size: int = C.MAX_FILE_SIZE
    fetch_timeout: float = C.FETCH_TIMEOUT


@dataclass
class AppConfig:
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)


_SECTIONS = {"Layout": "layout", "Render": "render", "Limits": "limits"}


def _section_from_parser(config, section, cls):
    """Builds one config dataclass, coercing each value to its field's type."""
    values = {}
    for f in fields(cls):
        raw = config.get(section, f.name, fallback=None)
        if raw is None:
            continue
        try:
            values[f.name] = int(float(raw)) if f.type is int else float(raw)
        except ValueError as e:
            raise ConfigError(f"Invalid value for [{section}] {f.name}: {raw!r}") from e
    return cls(**values)


def load_config(config_path=None) -> AppConfig:
    """Reads settings from the config file, applying defaults if missing."""
    config = configparser.ConfigParser()
    defaults = AppConfig()
    # Apply defaults first
    for section, attr in _SECTIONS.items():
        config[section] = {k: str(v) for k, v in asdict(getattr(defaults, attr)).items()}

    if config_path:
        if not config.read(config_path):
            log.info("Config file not found at %s. Using defaults.", config_path)
        else:
            log.info("Loaded settings from %s", config_path)

    unknown = [
        f"[{s}] {k}"
        for s in _SECTIONS
        for k in config[s]
        if k not in asdict(getattr(defaults, _SECTIONS[s]))
    ]
    if unknown:
        log.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

    return AppConfig(
        layout=_section_from_parser(config, "Layout", LayoutConfig),
        render=_section_from_parser(config, "Render", RenderConfig),
        limits=_section_from_parser(config, "Limits", LimitsConfig),
    )


def save_config(app_config: AppConfig, config_path):
    """Saves the given settings to the config file."""
    config = configparser.ConfigParser()
    for section, attr in _SECTIONS.items():
        config[section] = {k: str(v) for k, v in asdict(getattr(app_config, attr)).items()}
    try:
        with open(config_path, "w") as configfile:
            config.write(configfile)
        log.info("Settings successfully saved to %s", config_path)
    except IOError as e:
        log.error("Failed to write settings to %s: %s", config_path, e)
