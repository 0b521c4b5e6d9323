"""
Completion Workflow: Open -> Completed for one order.
Gated on the reconciled completable flag; every attempt is written to completion_log.
No retry: a failed attempt needs a fresh trigger from the operator.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from orderpick.db import SessionLocal
from orderpick.errors import OrderNotCompletable, OrderPickError
from orderpick.models import CompletionLog
from orderpick.schema import CompletionAttempt, OrderView
from orderpick.services.woo_client import OrderStatusSnapshot, WooCommerceClient
from orderpick.utils import truncate

logger = logging.getLogger(__name__)


def record_attempt(order_id: int, outcome: str, status_code: int, body: str) -> None:
    """Persist one completion attempt. A log write failure never hides the attempt's own result."""
    db = SessionLocal()
    try:
        db.add(CompletionLog(order_id=order_id, outcome=outcome, response_status=status_code, response_body=truncate(body)))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("completion_log_write_failed", extra={"order_id": order_id, "outcome": outcome})
    finally:
        db.close()


def complete_order(order: OrderView, client: WooCommerceClient) -> OrderStatusSnapshot:
    """
    Mark a reconciled order completed upstream.
    Raises OrderNotCompletable without touching the remote platform when any item is unpurchased.
    Progress records for the order are kept.
    """
    if not order.completable:
        pending = order.items_total - order.items_purchased
        record_attempt(order.id, "rejected", 0, f"{pending} item(s) not purchased")
        raise OrderNotCompletable(f"Order #{order.id} still has {pending} unpurchased item(s)")

    try:
        snapshot = client.set_order_completed(order.id)
    except OrderPickError as e:
        record_attempt(order.id, "failed", e.upstream_status or 0, e.upstream_body or e.message)
        logger.warning("order_completion_failed", extra={"order_id": order.id, "error_code": e.error_code})
        raise

    record_attempt(order.id, "completed", 200, f"status={snapshot.status}")
    logger.info("order_completed", extra={"order_id": order.id})
    return snapshot


def recent_attempts(limit: int = 50) -> list[CompletionAttempt]:
    """Most recent completion attempts, newest first."""
    db = SessionLocal()
    try:
        rows = (
            db.query(CompletionLog)
            .order_by(CompletionLog.created_at.desc(), CompletionLog.id.desc())
            .limit(limit)
            .all()
        )
        return [CompletionAttempt.model_validate(r) for r in rows]
    finally:
        db.close()
