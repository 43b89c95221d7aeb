"""Unit tests for TextExtractor: format dispatch, CSV rendering, failures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gemshop.services.ingestion.text_extractor import TextExtractor, source_type_for
from gemshop.utils.errors import ExtractionError, IngestionError


@pytest.fixture
def extractor() -> TextExtractor:
    return TextExtractor()


class TestPlainText:
    async def test_txt_read_verbatim(self, extractor: TextExtractor, tmp_path: Path) -> None:
        path = tmp_path / "upload.bin"
        path.write_text("Ligne 1\n\nLigne 2 : été", encoding="utf-8")

        text = await extractor.extract(path, "notes.txt")

        assert text == "Ligne 1\n\nLigne 2 : été"

    async def test_markdown_read_verbatim(self, extractor: TextExtractor, tmp_path: Path) -> None:
        path = tmp_path / "README.md"
        path.write_text("# Title\n\nBody", encoding="utf-8")

        assert await extractor.extract(path, "README.MD") == "# Title\n\nBody"

    async def test_invalid_utf8_raises_extraction_error(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "bad.txt"
        path.write_bytes(b"\xff\xfe\xfa not utf-8")

        with pytest.raises(ExtractionError) as exc_info:
            await extractor.extract(path, "bad.txt")

        assert exc_info.value.filename == "bad.txt"
        assert isinstance(exc_info.value, IngestionError)

    async def test_missing_file_raises_extraction_error(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        with pytest.raises(ExtractionError):
            await extractor.extract(tmp_path / "nope.txt", "nope.txt")


class TestCsv:
    async def test_rows_render_as_column_value_pairs(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "products.csv"
        path.write_text("name,price\nWidget,9.99\n", encoding="utf-8")

        text = await extractor.extract(path, "products.csv")

        assert text == "name: Widget, price: 9.99"

    async def test_rows_separated_by_blank_line_and_blank_lines_skipped(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "products.csv"
        path.write_text("name,price\nWidget,9.99\n\nGadget,4.50\n", encoding="utf-8")

        text = await extractor.extract(path, "products.csv")

        assert text == "name: Widget, price: 9.99\n\nname: Gadget, price: 4.50"

    async def test_row_of_empty_cells_is_kept(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "gaps.csv"
        path.write_text("name,price\n,\n", encoding="utf-8")

        assert await extractor.extract(path, "gaps.csv") == "name: , price: "

    async def test_header_only_file_is_empty(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "header.csv"
        path.write_text("name,price\n", encoding="utf-8")

        assert await extractor.extract(path, "header.csv") == ""

    @pytest.mark.parametrize("row", ["Widget", "Widget,9.99,extra"])
    async def test_row_width_mismatch_raises_extraction_error(
        self, extractor: TextExtractor, tmp_path: Path, row: str
    ) -> None:
        path = tmp_path / "ragged.csv"
        path.write_text(f"name,price\nGadget,4.50\n{row}\n", encoding="utf-8")

        with pytest.raises(ExtractionError, match="line 3") as exc_info:
            await extractor.extract(path, "ragged.csv")

        assert exc_info.value.filename == "ragged.csv"


class TestPdf:
    async def test_pages_joined_with_blank_lines(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        page1 = MagicMock()
        page1.get_text.return_value = "Page one text\n"
        page2 = MagicMock()
        page2.get_text.return_value = "   "
        page3 = MagicMock()
        page3.get_text.return_value = "Page three text"

        mock_doc = MagicMock()
        mock_doc.__enter__.return_value = mock_doc
        mock_doc.__iter__.return_value = iter([page1, page2, page3])

        path = tmp_path / "doc.pdf"
        path.write_bytes(b"%PDF-1.4")

        with patch(
            "gemshop.services.ingestion.text_extractor.fitz.open",
            return_value=mock_doc,
        ) as mock_open:
            text = await extractor.extract(path, "Doc.PDF")

        mock_open.assert_called_once_with(str(path))
        assert text == "Page one text\n\nPage three text"

    async def test_corrupt_pdf_raises_extraction_error(
        self, extractor: TextExtractor, tmp_path: Path
    ) -> None:
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not a pdf")

        with patch(
            "gemshop.services.ingestion.text_extractor.fitz.open",
            side_effect=RuntimeError("cannot open broken document"),
        ):
            with pytest.raises(ExtractionError, match="broken.pdf"):
                await extractor.extract(path, "broken.pdf")


class TestUnsupported:
    @pytest.mark.parametrize("filename", ["image.png", "archive.zip", "README"])
    async def test_unknown_extension_returns_empty(
        self, extractor: TextExtractor, tmp_path: Path, filename: str
    ) -> None:
        path = tmp_path / "blob"
        path.write_bytes(b"\x89PNG")

        assert await extractor.extract(path, filename) == ""


class TestSourceType:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [("a.pdf", "pdf"), ("B.CSV", "csv"), ("notes.md", "md"), ("Makefile", "file")],
    )
    def test_source_type_from_extension(self, filename: str, expected: str) -> None:
        assert source_type_for(filename) == expected
