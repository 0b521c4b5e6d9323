"""
Tests for the Streamlit console: progress is written only when the operator changes a widget.
"""
from pathlib import Path

import pytest
import requests

AppTest = pytest.importorskip("streamlit.testing.v1").AppTest

APP = Path(__file__).resolve().parent.parent / "frontend" / "app.py"


class FakeResponse:
    def __init__(self, body, status_code=200):
        self._body = body
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = str(body)

    def json(self):
        return self._body


def _item(item_id, quantity, quantity_purchased, is_purchased, conflict=False):
    return {
        "id": item_id, "name": f"Item {item_id}", "product_id": None, "quantity": quantity,
        "sku": None, "total": "10.00", "category": "Products", "image_url": None,
        "quantity_purchased": quantity_purchased, "is_purchased": is_purchased,
        "progress_conflict": conflict,
    }


def _order(order_id, items):
    purchased = sum(1 for i in items if i["is_purchased"])
    return {
        "id": order_id, "date_created": "2024-05-02T09:00:00", "status": "processing", "total": "30.00",
        "customer": {"first_name": "Ana", "last_name": "Diaz"},
        "line_items": items,
        "categories": [{
            "category": "Products", "items": items, "purchased_count": purchased,
            "total_count": len(items), "is_complete": purchased == len(items),
        }],
        "completable": purchased == len(items),
        "items_purchased": purchased,
        "items_total": len(items),
    }


@pytest.fixture
def backend(monkeypatch):
    """Answers the console's GETs from canned orders and records every POST."""
    posts = []
    orders = {
        # 10: saved 3 against a quantity of 2; 11: purchased count without the flag
        "open": [_order(501, [_item(10, 2, 3, True, conflict=True), _item(11, 1, 1, False, conflict=True)])],
        "completed": [],
    }

    def fake_get(url, params=None, headers=None, timeout=None):
        if url.endswith("/api/orders"):
            found = orders[params["status"]]
            return FakeResponse({"status_filter": params["status"], "orders": found, "count": len(found)})
        return FakeResponse({"attempts": []})

    def fake_post(url, json=None, headers=None, timeout=None):
        posts.append((url.rsplit("/api", 1)[1], json))
        return FakeResponse(json or {})

    monkeypatch.setattr(requests, "get", fake_get)
    monkeypatch.setattr(requests, "post", fake_post)
    return posts


def _app():
    at = AppTest.from_file(str(APP), default_timeout=30)
    at.run()
    assert not at.exception
    return at


def test_conflicting_items_are_not_saved_on_render(backend):
    at = _app()
    assert at.number_input(key="qty_501_10").value == 2
    assert at.toggle(key="qty_501_11").value is False
    assert backend == []


def test_counter_change_saves_progress(backend):
    at = _app()
    at.number_input(key="qty_501_10").set_value(1).run()
    assert backend == [("/item-status", {
        "line_item_id": 10, "order_id": 501, "is_purchased": False, "quantity_purchased": 1,
    })]


def test_toggle_change_saves_progress(backend):
    at = _app()
    at.toggle(key="qty_501_11").set_value(True).run()
    assert backend == [("/item-status", {
        "line_item_id": 11, "order_id": 501, "is_purchased": True, "quantity_purchased": 1,
    })]
