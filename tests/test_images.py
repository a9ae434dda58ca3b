import base64
from io import BytesIO
from unittest.mock import MagicMock

from PIL import Image
from pdfminer.layout import LTImage
from pdfminer.pdftypes import PDFNotImplementedError
from pdfminer.psparser import PSLiteral

from pdfrecon_lib.images import ImageResolver, decode_image, find_images_recursively


def _png_bytes(size=(3, 2), color="blue"):
    byte_io = BytesIO()
    Image.new("RGB", size, color=color).save(byte_io, format="PNG")
    return byte_io.getvalue()


def _mock_lt_image(data, attrs=None, width=100, height=100, name="Im1"):
    mock_lt_image = MagicMock(spec=LTImage)
    mock_lt_image.__class__ = LTImage
    mock_lt_image.name = name
    mock_lt_image.width = width
    mock_lt_image.height = height
    mock_lt_image.stream = MagicMock()
    mock_lt_image.stream.get_data.return_value = data
    mock_lt_image.stream.attrs = attrs or {}
    return mock_lt_image


def test_encoded_image_becomes_png_data_uri():
    blocks = ImageResolver().resolve([_mock_lt_image(_png_bytes())], page_num=4)
    assert len(blocks) == 1
    block = blocks[0]
    assert block.src.startswith("data:image/png;base64,")
    assert (block.width, block.height) == (3, 2)
    assert block.alt == "Image 1 from page 4"
    assert block.to_dict()["pageNum"] == 4

    decoded = Image.open(BytesIO(base64.b64decode(block.src.split(",", 1)[1])))
    assert decoded.format == "PNG"


def test_raw_samples_are_reconstructed_from_stream_attrs():
    attrs = {
        "Width": 2,
        "Height": 1,
        "BitsPerComponent": 8,
        "ColorSpace": PSLiteral("DeviceRGB"),
    }
    img = decode_image(_mock_lt_image(b"\xff\x00\x00\x00\xff\x00", attrs))
    assert img.mode == "RGB"
    assert img.size == (2, 1)
    assert img.getpixel((0, 0)) == (255, 0, 0)


def test_grayscale_samples():
    attrs = {
        "Width": 2,
        "Height": 2,
        "BitsPerComponent": 8,
        "ColorSpace": [PSLiteral("CalGray")],
    }
    img = decode_image(_mock_lt_image(b"\x00\x40\x80\xff", attrs))
    assert img.mode == "L"


def test_undecodable_images_are_skipped(caplog):
    elements = [
        _mock_lt_image(b"not an image at all", name="Bad"),
        _mock_lt_image(b"", name="Empty"),
        _mock_lt_image(_png_bytes(), name="Good"),
    ]
    blocks = ImageResolver().resolve(elements, page_num=1)
    assert len(blocks) == 1
    assert blocks[0].alt == "Image 1 from page 1"
    assert "Bad" in caplog.text


def test_small_images_are_skipped_when_configured():
    elements = [_mock_lt_image(_png_bytes(), width=10, height=10)]
    assert ImageResolver(min_image_size=50).resolve(elements, page_num=1) == []
    assert len(ImageResolver(min_image_size=0).resolve(elements, page_num=1)) == 1


def test_images_nested_in_figures_are_found():
    inner = _mock_lt_image(_png_bytes(), name="Nested")
    top = _mock_lt_image(_png_bytes(), name="Top")
    figure = MagicMock()
    figure.__iter__.return_value = [inner]
    page_layout = MagicMock()
    page_layout.__iter__.return_value = [top, figure]

    found = list(find_images_recursively(page_layout))
    assert [image.name for image in found] == ["Top", "Nested"]


def test_unsupported_stream_filter_skips_only_that_image(caplog):
    broken = _mock_lt_image(b"", name="Filtered")
    broken.stream.get_data.side_effect = PDFNotImplementedError("Unsupported filter: /Foo")
    elements = [broken, _mock_lt_image(_png_bytes(), name="Good")]

    blocks = ImageResolver().resolve(elements, page_num=2)

    assert [block.alt for block in blocks] == ["Image 1 from page 2"]
    assert "Unsupported filter" in caplog.text
