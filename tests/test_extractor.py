import asyncio

import pytest

from conftest import FakeDocument, FakeEngine, PDF_BYTES, run
from pdfrecon_lib.api import extract_pdf
from pdfrecon_lib.exceptions import NoTextContentError
from pdfrecon_lib.extractor import PDFContentExtractor
from pdfrecon_lib.models import Heading, OutlineEntry, Paragraph
from pdfrecon_lib.progress import CancellationToken


def _scenario_a_runs():
    return [
        run("Title", 72, 720, font_size=22),
        run("Hello", 72, 700),
        run("world.", 105, 700),
        run("Second", 72, 688),
        run("sentence.", 112, 688),
    ]


def test_scenario_a_page_blocks():
    document = FakeDocument(num_pages=1)
    document.pages[1].runs = _scenario_a_runs()
    page_content = asyncio.run(PDFContentExtractor().extract_page(document.pages[1]))
    assert page_content.blocks == [
        Heading("Title", 1),
        Paragraph("Hello world. Second sentence."),
    ]
    assert page_content.images == []


def test_extract_keeps_heading_when_metadata_title_differs():
    document = FakeDocument(
        num_pages=1,
        info={
            "Title": b"Quarterly Report",
            "Author": b"Jane Roe",
            "CreationDate": b"D:20240102",
        },
    )
    document.pages[1].runs = _scenario_a_runs()
    result = asyncio.run(PDFContentExtractor().extract(document, "report.pdf"))
    assert result.title == "Quarterly Report"
    assert result.author == "Jane Roe"
    assert result.publish_date == "2024-01-02"
    assert result.content[0] == Heading("Title", 1)


def test_extract_suppresses_heading_used_as_title():
    document = FakeDocument(num_pages=1)
    document.pages[1].runs = _scenario_a_runs()
    result = asyncio.run(PDFContentExtractor().extract(document))
    assert result.title == "Title"
    assert result.content == [Paragraph("Hello world. Second sentence.")]


def test_pages_are_cleaned_up_in_order():
    document = FakeDocument(num_pages=3)
    for page in document.pages.values():
        page.runs = [run(f"text {page.page_num}", 72, 700)]
    asyncio.run(PDFContentExtractor().extract(document))
    assert document.events == [
        ("acquire", 1),
        ("cleanup", 1),
        ("acquire", 2),
        ("cleanup", 2),
        ("acquire", 3),
        ("cleanup", 3),
    ]


def test_empty_pages_are_not_errors_but_empty_document_is_fatal():
    document = FakeDocument(num_pages=2)
    document.pages[2].runs = [run("Only page two has text", 72, 700)]
    result = asyncio.run(PDFContentExtractor().extract(document))
    assert result.title == "Untitled"
    assert result.content == [Paragraph("Only page two has text")]

    with pytest.raises(NoTextContentError):
        asyncio.run(PDFContentExtractor().extract(FakeDocument(num_pages=2)))


def test_metadata_failure_is_advisory(mocker):
    document = FakeDocument(num_pages=1)
    document.pages[1].runs = [run("Body text", 72, 700)]
    mocker.patch.object(document, "metadata", side_effect=RuntimeError("broken info"))
    result = asyncio.run(PDFContentExtractor().extract(document, "paper.pdf"))
    assert result.title == "paper"
    assert result.author == ""


def test_outline_is_carried_and_failures_ignored(mocker):
    entries = [OutlineEntry("Chapter 1", 1, 1), OutlineEntry("Section 1.1", 2, None)]
    document = FakeDocument(num_pages=1, outline=entries)
    document.pages[1].runs = [run("Body", 72, 700)]
    result = asyncio.run(PDFContentExtractor().extract(document))
    assert result.to_dict()["outline"] == [
        {"title": "Chapter 1", "level": 1, "pageNum": 1},
        {"title": "Section 1.1", "level": 2, "pageNum": None},
    ]

    mocker.patch.object(document, "outline", side_effect=RuntimeError("bad outline"))
    assert asyncio.run(PDFContentExtractor().extract(document)).outline == []


def test_cancellation_token_stops_extraction():
    document = FakeDocument(num_pages=3)
    for page in document.pages.values():
        page.runs = [run(f"text {page.page_num}", 72, 700)]
    token = CancellationToken()
    token.cancel()
    extractor = PDFContentExtractor(token=token)
    assert asyncio.run(extractor.extract_pages(document)) == []
    assert document.events == []


def test_extract_pdf_destroys_document_once_on_success_and_failure():
    document = FakeDocument(num_pages=1)
    document.pages[1].runs = [run("Body", 72, 700)]
    engine = FakeEngine(document)
    asyncio.run(extract_pdf(PDF_BYTES, engine=engine))
    assert document.destroy_calls == 1

    empty = FakeDocument(num_pages=1)
    with pytest.raises(NoTextContentError):
        asyncio.run(extract_pdf(PDF_BYTES, engine=FakeEngine(empty)))
    assert empty.destroy_calls == 1


def test_extract_pdf_page_selection():
    document = FakeDocument(num_pages=3)
    for page in document.pages.values():
        page.runs = [run(f"text {page.page_num}", 72, 700)]
    engine = FakeEngine(document)
    result = asyncio.run(extract_pdf(PDF_BYTES, engine=engine, pages={3, 1, 9}))
    assert [b.text for b in result.content] == ["text 1", "text 3"]


def test_unreadable_page_is_treated_as_empty(mocker, caplog):
    document = FakeDocument(num_pages=2)
    document.pages[1].runs = [run("Readable text.", 72, 700)]
    mocker.patch.object(
        document.pages[2],
        "get_text_content",
        side_effect=ValueError("bad content stream"),
    )
    mocker.patch.object(document.pages[2], "get_images", side_effect=ValueError("bad page"))

    result = asyncio.run(PDFContentExtractor().extract(document))

    assert result.content == [Paragraph("Readable text.")]
    assert "bad content stream" in caplog.text
    assert ("cleanup", 2) in document.events
