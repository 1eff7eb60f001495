from __future__ import annotations

import pytest
from pypdf import PdfReader

from file_converter.conversion import NoExtractableImages, NoExtractableText
from file_converter.conversion import strategies
from file_converter.conversion.strategies import NO_TEXT_SENTINEL


def _page_texts(path) -> list[str]:
    return [(page.extract_text() or "").strip() for page in PdfReader(path).pages]


def test_image_to_pdf_makes_one_page_sized_to_the_image(make_image, out_dir) -> None:
    image = make_image("scan.jpg", size=(300, 150))

    output = strategies.image_to_pdf(image, "scan", out_dir)

    assert output == out_dir / "scan.pdf"
    reader = PdfReader(output)
    assert len(reader.pages) == 1
    box = reader.pages[0].mediabox
    assert float(box.width) == pytest.approx(300, abs=1)
    assert float(box.height) == pytest.approx(150, abs=1)


def test_extract_text_keeps_page_order(make_text_pdf) -> None:
    pdf = make_text_pdf(["Alpha page text", "Beta page text", "Gamma page text"])

    text = strategies.extract_text(pdf)

    assert "Alpha page text" in text
    assert text.index("Alpha") < text.index("Beta") < text.index("Gamma")


def test_extract_text_returns_sentinel_for_textless_document(make_text_pdf) -> None:
    pdf = make_text_pdf(["", ""])
    assert strategies.extract_text(pdf) == NO_TEXT_SENTINEL


def test_extract_text_to_file(make_text_pdf, out_dir) -> None:
    pdf = make_text_pdf(["Quarterly numbers"])
    output = strategies.extract_text_to_file(pdf, "report", out_dir)
    assert output.name == "report.txt"
    assert "Quarterly numbers" in output.read_text(encoding="utf-8")


def test_split_then_merge_round_trips(make_text_pdf, out_dir) -> None:
    pdf = make_text_pdf(["First", "Second", "Third"])
    original_bytes = pdf.read_bytes()

    parts = strategies.split_pdf(pdf, "book", out_dir)

    assert [p.name for p in parts] == ["book-page-1.pdf", "book-page-2.pdf", "book-page-3.pdf"]
    for part in parts:
        assert len(PdfReader(part).pages) == 1

    merged = strategies.merge_pdfs(parts, "book", out_dir)

    assert merged.name == "book-merged.pdf"
    assert _page_texts(merged) == _page_texts(pdf) == ["First", "Second", "Third"]
    assert pdf.read_bytes() == original_bytes


def test_merge_preserves_input_order(make_text_pdf, out_dir) -> None:
    a = make_text_pdf(["A1", "A2"], name="a.pdf")
    b = make_text_pdf(["B1"], name="b.pdf")

    merged = strategies.merge_pdfs([b, a], "combined", out_dir)

    assert _page_texts(merged) == ["B1", "A1", "A2"]


def test_compress_keeps_pages_and_text(make_text_pdf, out_dir) -> None:
    pdf = make_text_pdf(["Keep me", "And me"])

    output = strategies.compress_pdf(pdf, "doc", out_dir)

    assert output.name == "doc-compressed.pdf"
    assert _page_texts(output) == ["Keep me", "And me"]


def test_extract_images_numbers_across_the_document(make_image, out_dir, tmp_path) -> None:
    first = strategies.image_to_pdf(make_image("one.png", color="red"), "one", tmp_path)
    second = strategies.image_to_pdf(make_image("two.png", color="blue"), "two", tmp_path)
    both = strategies.merge_pdfs([first, second], "both", tmp_path)

    images = strategies.extract_images(both, "both", out_dir)

    assert [p.stem for p in images] == ["both-img-1", "both-img-2"]
    assert all(p.stat().st_size > 0 for p in images)


def test_extract_images_without_images_fails(make_text_pdf, out_dir) -> None:
    with pytest.raises(NoExtractableImages):
        strategies.extract_images(make_text_pdf(["just text"]), "doc", out_dir)


def test_pdf_to_word_wraps_text_in_one_paragraph(make_text_pdf, out_dir) -> None:
    from docx import Document

    pdf = make_text_pdf(["Hello Word"])

    output = strategies.pdf_to_word(pdf, "letter", out_dir)

    assert output.name == "letter.docx"
    paragraphs = [p.text for p in Document(str(output)).paragraphs]
    assert len(paragraphs) == 1
    assert "Hello Word" in paragraphs[0]


def test_office_to_pdf_names_output_after_base_name(renderer, tmp_path, out_dir) -> None:
    source = tmp_path / "7f3a9c.docx"
    source.write_bytes(b"fake docx")

    output = strategies.office_to_pdf(source, "Contract", out_dir, renderer)

    assert output == out_dir / "Contract.pdf"
    assert output.is_file()
    # scratch directory is gone
    assert [p.name for p in out_dir.iterdir()] == ["Contract.pdf"]


def test_summarize_refuses_textless_document_before_calling_service(make_text_pdf, out_dir, completion) -> None:
    pdf = make_text_pdf([""])

    with pytest.raises(NoExtractableText):
        strategies.summarize_pdf(pdf, "scan", out_dir, completion)

    assert completion.prompts == []
    assert list(out_dir.iterdir()) == []


def test_summarize_persists_response_verbatim(make_text_pdf, out_dir, completion) -> None:
    pdf = make_text_pdf(["Revenue grew ten percent"])

    output = strategies.summarize_pdf(pdf, "q3", out_dir, completion)

    assert output.name == "q3-summary.txt"
    assert output.read_text(encoding="utf-8") == completion.answer
    assert completion.prompts[0].startswith("Summarize this document:")
    assert "Revenue grew ten percent" in completion.prompts[0]


def test_extract_tables_uses_table_prompt(make_text_pdf, out_dir, completion) -> None:
    completion.answer = '[{"region": "EU", "total": 4}]'
    pdf = make_text_pdf(["Region EU total 4"])

    output = strategies.extract_tables(pdf, "sales", out_dir, completion)

    assert output.name == "sales-tables.txt"
    assert output.read_text(encoding="utf-8") == completion.answer
    assert "tabular data" in completion.prompts[0]


def test_extract_tables_refuses_textless_document(make_text_pdf, out_dir, completion) -> None:
    with pytest.raises(NoExtractableText):
        strategies.extract_tables(make_text_pdf([""]), "scan", out_dir, completion)
    assert completion.prompts == []
