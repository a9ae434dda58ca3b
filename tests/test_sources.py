import pytest
import requests

from pdfrecon_lib.config import LimitsConfig
from pdfrecon_lib.exceptions import FileTooLargeError, InvalidPdfError, SourceFetchError
from pdfrecon_lib.sources import load_pdf_bytes, name_from_identifier

PDF = b"%PDF-1.7\nbody"


def _mock_response(mocker, chunks, headers=None):
    response = mocker.MagicMock()
    response.__enter__.return_value = response
    response.headers = headers or {}
    response.iter_content.return_value = iter(chunks)
    return response


def test_bytes_source():
    data, identifier = load_pdf_bytes(PDF, identifier="upload.pdf")
    assert data == PDF
    assert identifier == "upload.pdf"


def test_path_source(tmp_path):
    path = tmp_path / "paper.pdf"
    path.write_bytes(PDF)
    data, identifier = load_pdf_bytes(str(path))
    assert data == PDF
    assert identifier == str(path)


def test_missing_path(tmp_path):
    with pytest.raises(SourceFetchError, match="not found"):
        load_pdf_bytes(str(tmp_path / "missing.pdf"))


def test_non_pdf_is_rejected():
    with pytest.raises(InvalidPdfError):
        load_pdf_bytes(b"<html>not a pdf</html>")
    with pytest.raises(InvalidPdfError):
        load_pdf_bytes(b"")


def test_size_limit_on_buffer():
    with pytest.raises(FileTooLargeError, match="too large"):
        load_pdf_bytes(PDF, limits=LimitsConfig(max_file_size=4))


def test_url_source_is_streamed(mocker):
    response = _mock_response(mocker, [b"%PDF-1.4\n", b"rest"])
    get = mocker.patch("pdfrecon_lib.sources.requests.get", return_value=response)
    data, identifier = load_pdf_bytes("https://example.com/docs/My%20Paper.pdf")
    assert data == b"%PDF-1.4\nrest"
    assert identifier == "https://example.com/docs/My%20Paper.pdf"
    assert get.call_args.kwargs["stream"] is True


def test_url_content_length_over_limit(mocker):
    response = _mock_response(mocker, [PDF], headers={"Content-Length": "999"})
    mocker.patch("pdfrecon_lib.sources.requests.get", return_value=response)
    with pytest.raises(FileTooLargeError):
        load_pdf_bytes("https://example.com/a.pdf", limits=LimitsConfig(max_file_size=100))


def test_url_stream_over_limit(mocker):
    response = _mock_response(mocker, [b"%PDF" + b"x" * 60, b"y" * 60])
    mocker.patch("pdfrecon_lib.sources.requests.get", return_value=response)
    with pytest.raises(FileTooLargeError):
        load_pdf_bytes("https://example.com/a.pdf", limits=LimitsConfig(max_file_size=100))


def test_url_errors_are_wrapped(mocker):
    mocker.patch(
        "pdfrecon_lib.sources.requests.get",
        side_effect=requests.exceptions.ConnectionError("refused"),
    )
    with pytest.raises(SourceFetchError, match="refused"):
        load_pdf_bytes("http://localhost:1/a.pdf")


@pytest.mark.parametrize(
    "identifier, name",
    [
        ("/tmp/reports/Annual Report.PDF", "Annual Report"),
        ("https://host/path/Some%20Doc.pdf?x=1", "Some Doc"),
        ("https://host/", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_name_from_identifier(identifier, name):
    assert name_from_identifier(identifier) == name
