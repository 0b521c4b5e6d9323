"""
Pytest configuration: add backend to path, point SQLite at a test DB, and
provide a fake WooCommerce store served through httpx.MockTransport.
"""
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

# Project root = parent of tests/
ROOT = Path(__file__).resolve().parent.parent
BACKEND = ROOT / "backend"
sys.path.insert(0, str(BACKEND))
# Use a test DB
os.environ["SQLITE_DB_PATH"] = str(ROOT / "data" / "test_orderpick.db")
for _var in ("WOO_BASE_URL", "WOO_CONSUMER_KEY", "WOO_CONSUMER_SECRET", "OPERATOR_TOKEN"):
    os.environ.pop(_var, None)

from orderpick.config import RemoteSettings  # noqa: E402
from orderpick.db import Base, engine, init_db  # noqa: E402
from orderpick.services.woo_client import WooCommerceClient  # noqa: E402

API_PREFIX = "/wp-json/wc/v3"


class FakeWooCommerce:
    """In-memory store answering the four calls the client makes."""

    def __init__(self):
        self.orders: dict[int, dict] = {}
        self.products: dict[int, dict] = {}
        self.requests: list[httpx.Request] = []
        # (method, route) -> httpx.Response to return or exception to raise
        self.failures: dict[tuple[str, str], object] = {}

    def add_order(self, order_id, items, status="processing", date_created="2024-05-01T10:00:00",
                  first_name="Ana", last_name="Diaz", total="25.00"):
        self.orders[order_id] = {
            "id": order_id,
            "status": status,
            "date_created": date_created,
            "total": total,
            "billing": {"first_name": first_name, "last_name": last_name},
            "line_items": [
                {
                    "id": item_id,
                    "name": f"Item {item_id}",
                    "product_id": product_id,
                    "quantity": qty,
                    "sku": f"SKU-{item_id}",
                    "total": "10.00",
                }
                for item_id, product_id, qty in items
            ],
        }
        return self.orders[order_id]

    def add_product(self, product_id, category=None, image=None):
        self.products[product_id] = {
            "id": product_id,
            "categories": [{"id": 1, "name": category}] if category else [],
            "images": [{"src": image}] if image else [],
        }

    def calls(self, method, route=None):
        out = [r for r in self.requests if r.method == method]
        if route is not None:
            out = [r for r in out if r.url.path == API_PREFIX + route]
        return out

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = request.url.path[len(API_PREFIX):]
        key = (request.method, "/orders/{id}" if route.startswith("/orders/") else route)
        failure = self.failures.get(key)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return failure

        if key == ("GET", "/orders"):
            wanted = request.url.params["status"].split(",")
            return httpx.Response(200, json=[o for o in self.orders.values() if o["status"] in wanted])
        if key == ("GET", "/products"):
            ids = {int(i) for i in request.url.params["include"].split(",")}
            return httpx.Response(200, json=[p for pid, p in self.products.items() if pid in ids])
        if key in (("GET", "/orders/{id}"), ("PUT", "/orders/{id}")):
            order_id = int(route.rsplit("/", 1)[1])
            if order_id not in self.orders:
                return httpx.Response(404, json={"code": "woocommerce_rest_shop_order_invalid_id", "message": "Invalid ID."})
            if request.method == "GET":
                return httpx.Response(200, json=self.orders[order_id])
            self.orders[order_id]["status"] = json.loads(request.content)["status"]
            return httpx.Response(200, json=self.orders[order_id])
        return httpx.Response(404, json={"code": "rest_no_route", "message": "No route was found."})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def clean_db():
    """Fresh tables for every test."""
    init_db()
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def woo():
    return FakeWooCommerce()


@pytest.fixture
def settings():
    return RemoteSettings(base_url="https://shop.test/", consumer_key="ck_test", consumer_secret="cs_test")


@pytest.fixture
def woo_client(woo, settings):
    client = WooCommerceClient(settings, transport=woo.transport())
    yield client
    client.close()


@pytest.fixture
def api(woo_client):
    """TestClient with the remote client dependency pointed at the fake store."""
    from fastapi.testclient import TestClient
    from orderpick.main import app
    from orderpick.api.routes import get_order_client

    app.dependency_overrides[get_order_client] = lambda: woo_client
    yield TestClient(app)
    app.dependency_overrides.clear()
