#!/usr/bin/env python3
"""
FastAPI server for the grocery ledger.

Serves a single page with the entry form, the sorted table and the
clear/export buttons, backed by a small JSON API.
"""

import html
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel

from . import export
from .ledger import Entry, InvalidEntryError, InvalidQuantityError, Ledger, Mode, parse_quantity

logger = logging.getLogger(__name__)


class EntrySubmission(BaseModel):
    """Form submission. ``available`` is validated by the ledger, not pydantic."""
    item: str
    brand: str = ""
    available: Any = None
    mode: str = "add"


class EntryOut(BaseModel):
    item: str
    brand: str
    available: int


PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
  body {{ font-family: sans-serif; margin: 2em; }}
  form {{ display: flex; flex-wrap: wrap; gap: 1em; align-items: flex-end; justify-content: center; }}
  label {{ display: block; font-weight: bold; }}
  table {{ border-collapse: collapse; width: 100%; margin-top: 1em; }}
  th, td {{ border: 1px solid #ccc; padding: 0.4em; text-align: center; }}
  tbody tr:nth-child(odd) {{ background: #f5f5f5; }}
  #error {{ color: #b00; text-align: center; }}
</style>
</head>
<body>
<h1>{title}</h1>
<form id="entry-form">
  <div><label for="item">Item</label><input id="item" name="item" placeholder="Item" required></div>
  <div><label for="brand">Brand</label><input id="brand" name="brand" placeholder="Brand"></div>
  <div><label for="available">Available</label><input id="available" name="available" type="number" step="1" placeholder="Available"></div>
  <div>
    <label>Mode</label>
    <input type="radio" id="mode-add" name="mode" value="add"{add_checked}><label for="mode-add" style="display:inline">Add</label>
    <input type="radio" id="mode-replace" name="mode" value="replace"{replace_checked}><label for="mode-replace" style="display:inline">Replace</label>
  </div>
  <button type="submit">Submit</button>
</form>
<p id="error"></p>
<table>
  <thead>
    <tr><th>Item</th><th>Brand</th><th style="width:5%">Available</th><th style="width:25%">Used</th><th style="width:25%">Bought</th></tr>
  </thead>
  <tbody>
{rows}
  </tbody>
</table>
<button id="clear">Clear Data</button>
<button id="export">Export to PDF</button>
<script>
const form = document.getElementById("entry-form");
form.addEventListener("submit", async (e) => {{
  e.preventDefault();
  const body = {{
    item: form.item.value,
    brand: form.brand.value,
    available: form.available.value,
    mode: form.querySelector("input[name=mode]:checked").value,
  }};
  const resp = await fetch("/api/items", {{
    method: "POST",
    headers: {{"Content-Type": "application/json"}},
    body: JSON.stringify(body),
  }});
  if (resp.ok) {{
    location.reload();
  }} else {{
    const data = await resp.json();
    document.getElementById("error").textContent = data.detail;
  }}
}});
document.getElementById("clear").addEventListener("click", async () => {{
  if (confirm("Remove all items?")) {{
    await fetch("/api/items", {{method: "DELETE"}});
    location.reload();
  }}
}});
document.getElementById("export").addEventListener("click", () => {{
  window.location = "/api/export?format=pdf";
}});
</script>
</body>
</html>
"""

ROW_TEMPLATE = "    <tr><td>{item}</td><td>{brand}</td><td>{available}</td><td></td><td></td></tr>"


def render_page(ledger: Ledger, title: str = export.DEFAULT_TITLE, mode: str = "add") -> str:
    """Render the single-page UI with the current sorted table."""
    rows = "\n".join(
        ROW_TEMPLATE.format(
            item=html.escape(e.item),
            brand=html.escape(e.brand),
            available=e.available,
        )
        for e in ledger.sorted_view()
    )
    is_add = Mode.parse(mode) is Mode.ADD
    return PAGE_TEMPLATE.format(
        title=html.escape(title),
        rows=rows,
        add_checked=" checked" if is_add else "",
        replace_checked="" if is_add else " checked",
    )


def create_app(
    ledger: Ledger,
    title: str = export.DEFAULT_TITLE,
    default_mode: str = "add",
) -> FastAPI:
    """Build the FastAPI app around one ledger instance.

    Raises:
        ValueError: If ``default_mode`` is not a known mode.
    """
    default_mode = Mode.parse(default_mode).value
    app = FastAPI(title="Grocery Ledger")
    app.state.ledger = ledger

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        return render_page(ledger, title=title, mode=default_mode)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "entries": len(ledger)}

    @app.get("/api/items", response_model=list[EntryOut])
    def list_items() -> list[dict[str, Any]]:
        return [e.to_dict() for e in ledger.sorted_view()]

    @app.post("/api/items", response_model=EntryOut)
    def submit_item(submission: EntrySubmission) -> dict[str, Any]:
        try:
            mode = Mode.parse(submission.mode)
            available = parse_quantity(submission.available)
            stored = ledger.add_or_merge(
                Entry(item=submission.item, brand=submission.brand, available=available),
                mode,
            )
        except (InvalidQuantityError, InvalidEntryError, ValueError) as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return stored.to_dict()

    @app.delete("/api/items")
    def clear_items() -> dict[str, Any]:
        ledger.clear()
        return {"success": True}

    @app.get("/api/export")
    def export_items(format: Optional[str] = Query("pdf")) -> Response:
        try:
            exporter = export.get_exporter(format or "pdf", title=title)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        try:
            content = export.render_ledger(ledger, exporter)
        except Exception as e:
            logger.exception("Error generating %s", exporter.filename)
            raise HTTPException(status_code=500, detail="Export failed") from e
        return Response(
            content=content,
            media_type=exporter.media_type,
            headers={"Content-Disposition": f'attachment; filename="{exporter.filename}"'},
        )

    return app
