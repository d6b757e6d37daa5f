"""
Printable exports of the grocery list.

Exporters turn a sequence of entries into document bytes. The PDF layout is
an A4 landscape page with a title and a table with the columns
Item, Brand, Available, Used, Bought. Used and Bought are left blank for
writing on the printout.
"""
from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .ledger import Entry

if TYPE_CHECKING:
    from .ledger import Ledger

logger = logging.getLogger(__name__)

COLUMNS = ["Item", "Brand", "Available", "Used", "Bought"]
DEFAULT_TITLE = "Grocery List"


def table_rows(entries: Iterable[Entry]) -> list[list[str]]:
    """Rows for the export table, header excluded."""
    return [[e.item, e.brand, str(e.available), "", ""] for e in entries]


class Exporter(Protocol):
    filename: str
    media_type: str

    def render(self, rows: Iterable[Entry]) -> bytes: ...


class PdfExporter:
    """Render entries as a landscape PDF table."""

    media_type = "application/pdf"

    def __init__(self, title: str = DEFAULT_TITLE, filename: str = "grocery-list.pdf"):
        self.title = title
        self.filename = filename

    def render(self, rows: Iterable[Entry]) -> bytes:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4, landscape
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.lib.units import mm
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

        pdf_buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            pdf_buffer,
            pagesize=landscape(A4),
            title=self.title,
            leftMargin=14 * mm,
            rightMargin=14 * mm,
            topMargin=12 * mm,
            bottomMargin=12 * mm,
        )
        styles = getSampleStyleSheet()

        data = [COLUMNS] + table_rows(rows)
        # Available is narrow, Used and Bought get room for handwriting
        width = doc.width
        col_widths = [width * 0.25, width * 0.20, width * 0.09, width * 0.23, width * 0.23]
        table = Table(data, colWidths=col_widths, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2980b9")),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f5f5f5")]),
                    ("TOPPADDING", (0, 1), (-1, -1), 5),
                    ("BOTTOMPADDING", (0, 1), (-1, -1), 5),
                ]
            )
        )

        doc.build([Paragraph(self.title, styles["Heading2"]), Spacer(1, 4 * mm), table])
        return pdf_buffer.getvalue()


class CsvExporter:
    """Render entries as CSV with the same columns as the PDF."""

    media_type = "text/csv"

    def __init__(self, title: str = DEFAULT_TITLE, filename: str = "grocery-list.csv"):
        self.title = title
        self.filename = filename

    def render(self, rows: Iterable[Entry]) -> bytes:
        out = io.StringIO()
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow(COLUMNS)
        writer.writerows(table_rows(rows))
        return out.getvalue().encode("utf-8")


EXPORTERS: dict[str, type] = {
    "pdf": PdfExporter,
    "csv": CsvExporter,
}


def get_exporter(fmt: str = "pdf", title: str | None = None, filename: str | None = None) -> Exporter:
    """Get an exporter by format name.

    Raises:
        ValueError: If the format is unknown.
    """
    try:
        cls = EXPORTERS[fmt.lower()]
    except KeyError:
        raise ValueError(f"Unknown export format: {fmt}. Available: {list(EXPORTERS.keys())}") from None
    kwargs = {}
    if title:
        kwargs["title"] = title
    if filename:
        kwargs["filename"] = filename
    return cls(**kwargs)


def render_ledger(ledger: Ledger, exporter: Exporter) -> bytes:
    """Render the ledger's sorted view. Exceptions propagate."""
    return exporter.render(ledger.sorted_view())


def export_document(ledger: Ledger, exporter: Exporter, output: Path | str | None = None) -> Path | None:
    """Render the ledger and write it to a file.

    Failures are logged and reported by returning None; the ledger is only read.

    Args:
        ledger: Ledger to export.
        exporter: Exporter that renders the document.
        output: Target path (default: ``exporter.filename`` in the current directory).

    Returns:
        Path of the written document, or None if the export failed.
    """
    output = Path(output) if output else Path.cwd() / exporter.filename
    try:
        content = render_ledger(ledger, exporter)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(content)
    except Exception:
        logger.exception("Error generating %s", output.name)
        return None
    logger.info("Exported %d entries to %s", len(ledger), output)
    return output
