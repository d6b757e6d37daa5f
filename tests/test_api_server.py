"""Tests for the web form and JSON API."""
from unittest.mock import patch

import pytest

# Skip all tests if fastapi is not available
fastapi = pytest.importorskip("fastapi", reason="fastapi not installed (install with pip install grocery-ledger[web])")
pytest.importorskip("httpx", reason="httpx is needed for fastapi.testclient")

from fastapi.testclient import TestClient  # noqa: E402

from grocery_ledger import api_server  # noqa: E402
from grocery_ledger.ledger import Entry, Ledger  # noqa: E402
from grocery_ledger.storage import STORAGE_KEY, MemoryStore  # noqa: E402


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def ledger(store):
    return Ledger(store=store)


@pytest.fixture
def client(ledger):
    return TestClient(api_server.create_app(ledger))


class TestItems:
    """Tests for /api/items."""

    def test_list_empty(self, client):
        response = client.get("/api/items")
        assert response.status_code == 200
        assert response.json() == []

    def test_submit_new_item(self, client, store):
        response = client.post("/api/items", json={"item": "Milk", "brand": "A", "available": "2"})

        assert response.status_code == 200
        assert response.json() == {"item": "Milk", "brand": "A", "available": 2}
        assert store.get(STORAGE_KEY) == [{"item": "Milk", "brand": "A", "available": 2}]

    def test_submit_accumulates(self, client):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2, "mode": "add"})
        response = client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 3, "mode": "add"})

        assert response.json()["available"] == 5
        assert client.get("/api/items").json() == [{"item": "Milk", "brand": "A", "available": 5}]

    def test_submit_replace(self, client):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2})
        response = client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 9, "mode": "replace"})

        assert response.json()["available"] == 9

    def test_list_is_sorted(self, client):
        for item, brand, qty in [("Banana", "X", 1), ("Apple", "Z", 2), ("Apple", "A", 3)]:
            client.post("/api/items", json={"item": item, "brand": brand, "available": qty})

        assert client.get("/api/items").json() == [
            {"item": "Apple", "brand": "A", "available": 3},
            {"item": "Apple", "brand": "Z", "available": 2},
            {"item": "Banana", "brand": "X", "available": 1},
        ]

    @pytest.mark.parametrize("available", ["", "abc", "2.5", None])
    def test_invalid_quantity_rejected(self, client, ledger, available):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2})
        response = client.post("/api/items", json={"item": "Milk", "brand": "A", "available": available})

        assert response.status_code == 422
        assert "Invalid quantity" in response.json()["detail"]
        assert ledger.entries == [Entry("Milk", "A", 2)]

    @pytest.mark.parametrize("available", [True, False, 2.5, [1], {"n": 1}])
    def test_non_integer_json_rejected(self, client, ledger, available):
        """Booleans and fractional numbers are refused with a plain message."""
        response = client.post("/api/items", json={"item": "Milk", "brand": "A", "available": available})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert isinstance(detail, str)
        assert "Invalid quantity" in detail
        assert len(ledger) == 0

    def test_unknown_mode_rejected(self, client, ledger):
        response = client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 1, "mode": "subtract"})

        assert response.status_code == 422
        assert len(ledger) == 0

    def test_empty_item_rejected(self, client):
        response = client.post("/api/items", json={"item": "", "brand": "A", "available": 1})
        assert response.status_code == 422

    def test_clear(self, client, ledger, store):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2})
        response = client.delete("/api/items")

        assert response.json() == {"success": True}
        assert len(ledger) == 0
        assert STORAGE_KEY not in store


class TestExport:
    """Tests for /api/export."""

    def test_export_pdf(self, client):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2})
        response = client.get("/api/export")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="grocery-list.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_export_csv(self, client):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2})
        response = client.get("/api/export", params={"format": "csv"})

        assert response.status_code == 200
        assert response.text.splitlines() == ["Item,Brand,Available,Used,Bought", "Milk,A,2,,"]

    def test_export_unknown_format(self, client):
        assert client.get("/api/export", params={"format": "docx"}).status_code == 400

    def test_export_failure(self, client, ledger):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2})
        with patch.object(api_server.export, "render_ledger", side_effect=RuntimeError("boom")):
            response = client.get("/api/export")

        assert response.status_code == 500
        assert ledger.entries == [Entry("Milk", "A", 2)]


class TestPage:
    """Tests for the single-page UI."""

    def test_index_renders_form_and_table(self, client):
        client.post("/api/items", json={"item": "Banana", "brand": "X", "available": 1})
        client.post("/api/items", json={"item": "Apple", "brand": "Z", "available": 2})
        response = client.get("/")

        assert response.status_code == 200
        html = response.text
        assert '<form id="entry-form">' in html
        assert 'value="add" checked' in html
        assert "style=\"width:25%\">Bought</th>" in html
        assert html.index("<td>Apple</td>") < html.index("<td>Banana</td>")

    def test_index_escapes_names(self, client):
        client.post("/api/items", json={"item": "<b>Milk</b>", "brand": "A&B", "available": 1})
        html = client.get("/").text

        assert "&lt;b&gt;Milk&lt;/b&gt;" in html
        assert "A&amp;B" in html

    def test_default_mode_replace(self, ledger):
        client = TestClient(api_server.create_app(ledger, default_mode="replace"))
        assert 'value="replace" checked' in client.get("/").text

    def test_update_alias_as_default_mode(self, ledger):
        client = TestClient(api_server.create_app(ledger, default_mode="update"))
        assert 'value="replace" checked' in client.get("/").text

    def test_unknown_default_mode(self, ledger):
        with pytest.raises(ValueError, match="Unknown mode"):
            api_server.create_app(ledger, default_mode="subtract")

    def test_health(self, client):
        client.post("/api/items", json={"item": "Milk", "brand": "A", "available": 2})
        assert client.get("/health").json() == {"status": "ok", "entries": 1}
