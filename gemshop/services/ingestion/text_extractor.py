"""Plain-text extraction from uploaded files.

Dispatches on the lower-cased extension of the original filename:

    .pdf       page text via PyMuPDF (fitz), pages separated by blank lines
    .csv       one paragraph per data row, ``"column: value"`` pairs
    .txt .md   read verbatim as UTF-8

Any other extension yields an empty string, which the ingestion service
treats as "nothing to index".  Parsing is blocking, so it runs in a
worker thread via :func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import csv
from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from gemshop.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_EXTENSIONS = frozenset({".pdf", ".csv", ".txt", ".md"})


def source_type_for(filename: str) -> str:
    """Return the extension without its dot (``"pdf"``), or ``"file"`` if none."""
    suffix = Path(filename).suffix.lower()
    return suffix[1:] if suffix else "file"


class TextExtractor:
    """Turns a file on disk into plain text."""

    async def extract(self, file_path: str | Path, filename: str) -> str:
        """Extract the text of *file_path*, dispatching on *filename*'s extension.

        Parameters
        ----------
        file_path:
            Where the uploaded bytes were saved.
        filename:
            The original upload name; only its extension is used.

        Returns
        -------
        str
            The extracted text.  Empty for unsupported extensions.

        Raises
        ------
        ExtractionError
            If the file is missing, corrupt, or not valid UTF-8.
        """
        extension = Path(filename).suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            logger.warning(
                "unsupported_file_type",
                filename=filename,
                extension=extension or None,
            )
            return ""

        path = Path(file_path)
        try:
            if extension == ".pdf":
                text = await asyncio.to_thread(self._extract_pdf, path)
            elif extension == ".csv":
                text = await asyncio.to_thread(self._extract_csv, path)
            else:
                text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except Exception as exc:
            raise ExtractionError(
                filename=filename,
                message=f"Failed to extract text from {filename}: {exc}",
            ) from exc

        logger.info(
            "text_extracted",
            filename=filename,
            extension=extension,
            characters=len(text),
        )
        return text

    # ------------------------------------------------------------------
    # Format handlers (run in a worker thread)
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(path: Path) -> str:
        pages: list[str] = []
        with fitz.open(str(path)) as doc:
            for page in doc:
                page_text = page.get_text("text")
                if page_text and page_text.strip():
                    pages.append(page_text.strip())
        return "\n\n".join(pages)

    @staticmethod
    def _extract_csv(path: Path) -> str:
        """Render each data row as ``"col: value, col: value"``.

        Blank lines are skipped.  A row with a different number of cells
        than the header is rejected.  Rows are separated by a blank line so
        each one reads as its own paragraph.
        """
        rows: list[str] = []
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if header is None:
                return ""
            for cells in reader:
                if not cells:
                    continue
                if len(cells) != len(header):
                    raise ValueError(
                        f"line {reader.line_num} has {len(cells)} cells, "
                        f"header has {len(header)}"
                    )
                rows.append(", ".join(f"{column}: {value}" for column, value in zip(header, cells)))
        return "\n\n".join(rows)
