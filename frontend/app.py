"""
OrderPick - Streamlit operator console.
Tabs for open and completed orders; per-category item progress; completion button
enabled only for completable orders. All state comes from the backend API.
"""
import os
import streamlit as st
import requests

BACKEND_URL = os.environ.get("BACKEND_URL", "http://localhost:8000")
OPERATOR_TOKEN = os.environ.get("OPERATOR_TOKEN", "")


def _headers() -> dict:
    return {"X-Operator-Token": OPERATOR_TOKEN} if OPERATOR_TOKEN else {}


def _error_text(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}: {resp.text[:200]}"
    msg = body.get("message") or body.get("detail") or str(body)
    if body.get("upstream_status"):
        msg += f" (upstream {body['upstream_status']}: {body.get('upstream_body', '')[:200]})"
    return msg


def api_get(path: str, params: dict | None = None):
    r = requests.get(f"{BACKEND_URL}{path}", params=params, headers=_headers(), timeout=30)
    if not r.ok:
        raise RuntimeError(_error_text(r))
    return r.json()


def api_post(path: str, json: dict | None = None):
    r = requests.post(f"{BACKEND_URL}{path}", json=json, headers=_headers(), timeout=30)
    if not r.ok:
        raise RuntimeError(_error_text(r))
    return r.json()


def save_progress(order_id: int, item: dict, quantity_purchased: int) -> None:
    api_post("/api/item-status", {
        "line_item_id": item["id"],
        "order_id": order_id,
        "is_purchased": quantity_purchased == item["quantity"],
        "quantity_purchased": quantity_purchased,
    })


def widget_quantity(item: dict, value) -> int:
    # toggles report a bool, counters a number
    if isinstance(value, bool):
        return item["quantity"] if value else 0
    return int(value)


def on_progress_change(order_id: int, item: dict, key: str) -> None:
    """Widget callback, so progress is written only when the operator changes a value."""
    try:
        save_progress(order_id, item, widget_quantity(item, st.session_state[key]))
    except (RuntimeError, requests.exceptions.RequestException) as e:
        st.session_state["progress_error"] = f"Could not save progress for {item['name']}: {e}"


def render_item(order: dict, item: dict, editable: bool) -> None:
    cols = st.columns([1, 5, 3])
    if item.get("image_url"):
        cols[0].image(item["image_url"], width=48)
    label = f"**{item['quantity']}x** {item['name']}"
    if item["is_purchased"]:
        label = f"~~{label}~~"
    cols[1].markdown(label)
    cols[1].caption(f"SKU: {item.get('sku') or 'N/A'}")
    if item.get("progress_conflict"):
        cols[1].warning("Saved progress does not match the ordered quantity")

    key = f"qty_{order['id']}_{item['id']}"
    widget_opts = {"on_change": on_progress_change, "args": (order["id"], item, key), "disabled": not editable}
    if item["quantity"] > 1:
        # Conflicting progress above the ordered quantity is shown capped but left unsaved
        cols[2].number_input(
            "Purchased", min_value=0, max_value=item["quantity"],
            value=min(item["quantity_purchased"], item["quantity"]), key=key, **widget_opts,
        )
    else:
        cols[2].toggle("Purchased", value=item["is_purchased"], key=key, **widget_opts)


def render_order(order: dict, editable: bool) -> None:
    customer = order["customer"]
    header = (
        f"Order #{order['id']} - {customer['first_name']} {customer['last_name']} - "
        f"{order['date_created'][:10]} - {order['status']} - "
        f"{order['items_purchased']}/{order['items_total']}"
    )
    with st.expander(header, expanded=editable):
        for group in order["categories"]:
            badge = "done" if group["is_complete"] else "pending"
            st.markdown(f"#### {group['category']} ({group['purchased_count']} / {group['total_count']}, {badge})")
            for item in group["items"]:
                render_item(order, item, editable)
        if editable:
            if st.button("Complete order", key=f"complete_{order['id']}", disabled=not order["completable"]):
                try:
                    api_post(f"/api/orders/{order['id']}/complete")
                    st.success(f"Order #{order['id']} completed.")
                    st.rerun()
                except RuntimeError as e:
                    st.error(f"Could not complete order #{order['id']}: {e}")


st.set_page_config(page_title="OrderPick", layout="wide")
st.title("OrderPick")
if "progress_error" in st.session_state:
    st.error(st.session_state.pop("progress_error"))

tab_open, tab_done, tab_log = st.tabs(["Pending", "Completed", "Completion log"])

for tab, status, editable in ((tab_open, "open", True), (tab_done, "completed", False)):
    with tab:
        try:
            data = api_get("/api/orders", params={"status": status})
        except (RuntimeError, requests.exceptions.RequestException) as e:
            st.error(f"Failed to fetch orders: {e}")
            continue
        if not data["orders"]:
            st.info("All caught up! There are no orders here right now.")
        for order in data["orders"]:
            render_order(order, editable)

with tab_log:
    try:
        log = api_get("/api/completions")
        st.dataframe(log.get("attempts", []), use_container_width=True)
    except (RuntimeError, requests.exceptions.RequestException) as e:
        st.caption(f"Completion log: {e}")
