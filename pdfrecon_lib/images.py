# --- pdfrecon_lib/images.py ---
"""
pdfrecon_lib/images.py: Turns pdfminer image objects into embeddable PNG data
URIs.

pdfminer exposes the raw XObject stream. Encoded formats (JPEG, JPX, PNG...) are
opened directly by Pillow; unencoded samples are rebuilt from the stream's
Width, Height, BitsPerComponent and ColorSpace attributes.
"""
import base64
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError
from pdfminer.layout import LTImage
from pdfminer.pdftypes import resolve1
from pdfminer.psparser import PSException, PSLiteral

from .models import ImageBlock

log_images = logging.getLogger("pdfrecon.images")


def find_images_recursively(layout_obj):
    """Yields every LTImage in a layout tree, including those inside figures."""
    if isinstance(layout_obj, LTImage):
        yield layout_obj
    if hasattr(layout_obj, "_objs"):
        for child in layout_obj:
            yield from find_images_recursively(child)


def _color_space_name(cs):
    cs = resolve1(cs)
    if isinstance(cs, list) and cs:
        cs = resolve1(cs[0])
    if isinstance(cs, PSLiteral):
        return cs.name if isinstance(cs.name, str) else cs.name.decode("latin-1")
    return None


def _raw_image_mode(stream_attrs, size, data_len):
    """Guesses the Pillow mode of an unencoded sample buffer."""
    bpc = resolve1(stream_attrs.get("BitsPerComponent"))
    cs = _color_space_name(stream_attrs.get("ColorSpace"))

    if bpc == 1:
        return "1"
    if bpc == 8:
        if cs in ("DeviceGray", "CalGray"):
            return "L"
        if cs in ("DeviceRGB", "CalRGB", "ICCBased", "Indexed"):
            if data_len == size[0] * size[1] * 3:
                return "RGB"
        if cs == "DeviceCMYK":
            return "CMYK"

    if data_len == size[0] * size[1]:
        return "L"
    if data_len == size[0] * size[1] * 3:
        return "RGB"
    if data_len == size[0] * size[1] * 4:
        return "RGBA"
    return None


def decode_image(element):
    """Returns a Pillow image for an LTImage, or None when it cannot be decoded."""
    stream = getattr(element, "stream", None)
    if stream is None:
        return None
    image_data = stream.get_data()
    if not image_data:
        log_images.warning("Image '%s' has no data stream, skipping.", element.name)
        return None

    try:
        img = Image.open(BytesIO(image_data))
        img.load()
        return img
    except UnidentifiedImageError:
        log_images.debug(
            "Could not identify format of image '%s'. Attempting raw reconstruction.",
            element.name,
        )

    stream_attrs = getattr(stream, "attrs", {}) or {}
    width = resolve1(stream_attrs.get("Width"))
    height = resolve1(stream_attrs.get("Height"))
    if not (width and height):
        log_images.warning("Stream attrs of '%s' miss Width/Height. Skipping.", element.name)
        return None

    size = (int(width), int(height))
    mode = _raw_image_mode(stream_attrs, size, len(image_data))
    if not mode:
        log_images.warning("Unknown raw mode for image '%s'. Skipping.", element.name)
        return None

    log_images.debug("Reconstructing '%s' as %s %s", element.name, mode, size)
    try:
        return Image.frombytes(mode, size, image_data)
    except ValueError as e:
        log_images.warning("Raw reconstruction of '%s' failed: %s", element.name, e)
        return None


def to_data_uri(img) -> str:
    """Encodes a Pillow image as a PNG data URI."""
    if img.mode not in ("1", "L", "RGB", "RGBA"):
        img = img.convert("RGBA" if "A" in img.mode else "RGB")
    buffer = BytesIO()
    img.save(buffer, "PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class ImageResolver:
    """
    Converts the LTImage objects of one page into ImageBlocks.

    Image extraction is advisory: an image that cannot be decoded is logged
    and skipped, never failing the page.
    """

    def __init__(self, min_image_size=0):
        self.min_image_size = min_image_size

    def resolve(self, elements, page_num) -> list[ImageBlock]:
        blocks = []
        for element in elements:
            if element.width < self.min_image_size or element.height < self.min_image_size:
                log_images.debug("Skipping small image on page %d.", page_num)
                continue
            try:
                img = decode_image(element)
                if img is None:
                    continue
                src = to_data_uri(img)
            except (OSError, ValueError, PSException) as e:
                log_images.warning("Failed to process image on page %d: %s", page_num, e)
                continue

            blocks.append(
                ImageBlock(
                    src=src,
                    alt=f"Image {len(blocks) + 1} from page {page_num}",
                    page_num=page_num,
                    width=img.width,
                    height=img.height,
                )
            )
            log_images.info("Extracted image %d from page %d.", len(blocks), page_num)
        return blocks
