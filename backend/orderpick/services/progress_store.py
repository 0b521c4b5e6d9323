"""
Progress Store: durable purchase progress keyed by line item id.
Sole writer of the purchase_status table. Each write is one atomic upsert,
so a record's four fields always change together.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from orderpick.db import SessionLocal
from orderpick.errors import PersistenceUnavailable
from orderpick.models import PurchaseStatus
from orderpick.schema import PurchaseStatusOut

logger = logging.getLogger(__name__)


def read_all() -> list[PurchaseStatusOut]:
    """Every persisted progress record."""
    db = SessionLocal()
    try:
        rows = db.query(PurchaseStatus).order_by(PurchaseStatus.line_item_id).all()
        return [PurchaseStatusOut.model_validate(r) for r in rows]
    except SQLAlchemyError as e:
        logger.error("progress_read_failed", extra={"error": str(e)})
        raise PersistenceUnavailable(f"Could not read purchase progress: {e}") from e
    finally:
        db.close()


def get(line_item_id: int) -> Optional[PurchaseStatusOut]:
    """Progress for one line item, or None if it was never touched."""
    db = SessionLocal()
    try:
        row = db.query(PurchaseStatus).filter(PurchaseStatus.line_item_id == line_item_id).first()
        return PurchaseStatusOut.model_validate(row) if row else None
    except SQLAlchemyError as e:
        logger.error("progress_read_failed", extra={"line_item_id": line_item_id, "error": str(e)})
        raise PersistenceUnavailable(f"Could not read progress for line item {line_item_id}: {e}") from e
    finally:
        db.close()


def upsert(line_item_id: int, order_id: int, is_purchased: bool, quantity_purchased: int) -> PurchaseStatusOut:
    """
    Create or update the record for line_item_id in one statement.
    Concurrent writes to the same line item: last write wins.
    """
    values = {
        "order_id": order_id,
        "is_purchased": is_purchased,
        "quantity_purchased": quantity_purchased,
        "updated_at": datetime.utcnow(),
    }
    stmt = sqlite_insert(PurchaseStatus).values(line_item_id=line_item_id, **values)
    stmt = stmt.on_conflict_do_update(index_elements=[PurchaseStatus.line_item_id], set_=values)
    db = SessionLocal()
    try:
        db.execute(stmt)
        db.commit()
        row = db.query(PurchaseStatus).filter(PurchaseStatus.line_item_id == line_item_id).one()
        stored = PurchaseStatusOut.model_validate(row)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("progress_write_failed", extra={"line_item_id": line_item_id, "error": str(e)})
        raise PersistenceUnavailable(f"Could not save progress for line item {line_item_id}: {e}") from e
    finally:
        db.close()
    logger.info(
        "progress_saved",
        extra={"line_item_id": line_item_id, "order_id": order_id, "quantity_purchased": quantity_purchased},
    )
    return stored
