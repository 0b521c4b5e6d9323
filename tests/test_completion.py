"""
Tests for the completion workflow: precondition gate, remote failure surfacing, attempt log.
"""
from unittest.mock import Mock

import pytest

from orderpick.errors import AuthRejected, OrderNotCompletable, UpstreamUnavailable
from orderpick.services import completion, progress_store
from orderpick.services.reconciliation import progress_map, reconcile_order
from orderpick.services.woo_client import OrderStatusSnapshot, RawOrder


def _order_view(purchased: bool):
    raw = RawOrder.model_validate({
        "id": 501,
        "date_created": "2024-05-01T10:00:00",
        "status": "processing",
        "line_items": [{"id": 10, "name": "Beans", "product_id": 77, "quantity": 2}],
    })
    saved = progress_map([progress_store.upsert(10, 501, True, 2)]) if purchased else {}
    return raw, reconcile_order(raw, {}, saved)


def test_not_completable_makes_no_remote_call():
    """Scenario E."""
    _, view = _order_view(purchased=False)
    client = Mock()

    with pytest.raises(OrderNotCompletable):
        completion.complete_order(view, client)

    client.set_order_completed.assert_not_called()
    (attempt,) = completion.recent_attempts()
    assert (attempt.order_id, attempt.outcome) == (501, "rejected")


def test_completable_order_is_marked_completed():
    raw, view = _order_view(purchased=True)
    client = Mock()
    client.set_order_completed.return_value = OrderStatusSnapshot(id=raw.id, status="completed", total="30.00")

    snapshot = completion.complete_order(view, client)

    client.set_order_completed.assert_called_once_with(501)
    assert snapshot.status == "completed"
    (attempt,) = completion.recent_attempts()
    assert (attempt.outcome, attempt.response_status) == ("completed", 200)
    # progress is kept as history
    assert progress_store.get(10).is_purchased is True


def test_remote_failure_is_surfaced_and_logged():
    _, view = _order_view(purchased=True)
    client = Mock()
    client.set_order_completed.side_effect = AuthRejected(
        "Remote platform rejected PUT /orders/501 with status 401",
        upstream_status=401,
        upstream_body='{"message":"Consumer key is invalid."}',
    )

    with pytest.raises(AuthRejected):
        completion.complete_order(view, client)

    (attempt,) = completion.recent_attempts()
    assert (attempt.outcome, attempt.response_status) == ("failed", 401)
    assert "Consumer key" in attempt.response_body


def test_no_response_failure_logged_with_zero_status():
    _, view = _order_view(purchased=True)
    client = Mock()
    client.set_order_completed.side_effect = UpstreamUnavailable("Remote platform unreachable")

    with pytest.raises(UpstreamUnavailable):
        completion.complete_order(view, client)

    (attempt,) = completion.recent_attempts()
    assert (attempt.outcome, attempt.response_status) == ("failed", 0)
    assert attempt.response_body == "Remote platform unreachable"


def test_recent_attempts_newest_first():
    for order_id in (1, 2, 3):
        completion.record_attempt(order_id, "completed", 200, "status=completed")
    assert [a.order_id for a in completion.recent_attempts()] == [3, 2, 1]
    assert len(completion.recent_attempts(limit=2)) == 2
