import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from order_api import models, schemas
from order_api.database import Base, make_session_factory
from order_api.errors import PersistenceError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way the orders table stores it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderStore(ABC):
    """Persistence contract for orders.

    Handlers only talk to this interface, so the relational store and the
    in-memory store are interchangeable.
    """

    @abstractmethod
    def create(self, order: schemas.OrderCreate) -> schemas.Order:
        """Persists a new order. The store assigns the id and both timestamps."""

    @abstractmethod
    def get_all(self) -> List[schemas.Order]:
        """Returns every order in insertion order."""

    @abstractmethod
    def get_by_id(self, order_id: int) -> Optional[schemas.Order]:
        """Returns the order, or None when no row has that id."""

    @abstractmethod
    def update(self, order_id: int, order: schemas.OrderUpdate) -> schemas.Order:
        """Overwrites product, count and status and refreshes updated_at.

        Existence of the row is not checked: updating an unknown id affects
        zero rows and still succeeds.
        """

    @abstractmethod
    def delete(self, order_id: int) -> None:
        """Removes the order. Deleting an unknown id is a no-op."""


# ===============================
# SQLAlchemy store
# ===============================

class SQLOrderStore(OrderStore):
    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow):
        self.engine = engine
        self.clock = clock
        self.SessionLocal = make_session_factory(engine)

    def create_tables(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Error creating orders table: {e}")
            raise PersistenceError(str(e)) from e

    def close(self) -> None:
        self.engine.dispose()

    def create(self, order: schemas.OrderCreate) -> schemas.Order:
        now = self.clock()
        db = self.SessionLocal()
        try:
            db_order = models.Order(
                product=order.product,
                count=order.count,
                status=order.status,
                created_at=now,
                updated_at=now,
            )
            db.add(db_order)
            db.commit()
            db.refresh(db_order)
            if db_order.id is None:
                raise PersistenceError("store did not assign an order id")
            logger.info(f"Order {db_order.id} created.")
            return schemas.Order.model_validate(db_order)
        except (SQLAlchemyError, OverflowError) as e:
            db.rollback()
            logger.error(f"Failed to create order: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def get_all(self) -> List[schemas.Order]:
        db = self.SessionLocal()
        try:
            rows = db.query(models.Order).order_by(models.Order.id).all()
            return [schemas.Order.model_validate(row) for row in rows]
        except (SQLAlchemyError, OverflowError) as e:
            logger.error(f"Failed to list orders: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def get_by_id(self, order_id: int) -> Optional[schemas.Order]:
        db = self.SessionLocal()
        try:
            row = db.query(models.Order).filter(models.Order.id == order_id).first()
            if row is None:
                return None
            return schemas.Order.model_validate(row)
        except (SQLAlchemyError, OverflowError) as e:
            logger.error(f"Failed to load order {order_id}: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def update(self, order_id: int, order: schemas.OrderUpdate) -> schemas.Order:
        now = self.clock()
        db = self.SessionLocal()
        try:
            affected = (
                db.query(models.Order)
                .filter(models.Order.id == order_id)
                .update(
                    {
                        models.Order.product: order.product,
                        models.Order.count: order.count,
                        models.Order.status: order.status,
                        models.Order.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            db.commit()
            logger.info(f"Order {order_id} updated ({affected} row(s) affected).")
            row = db.query(models.Order).filter(models.Order.id == order_id).first()
            if row is not None:
                return schemas.Order.model_validate(row)
            return schemas.Order(id=order_id, updated_at=now, **order.model_dump())
        except (SQLAlchemyError, OverflowError) as e:
            db.rollback()
            logger.error(f"Failed to update order {order_id}: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def delete(self, order_id: int) -> None:
        db = self.SessionLocal()
        try:
            affected = (
                db.query(models.Order)
                .filter(models.Order.id == order_id)
                .delete(synchronize_session=False)
            )
            db.commit()
            logger.info(f"Order {order_id} deleted ({affected} row(s) affected).")
        except (SQLAlchemyError, OverflowError) as e:
            db.rollback()
            logger.error(f"Failed to delete order {order_id}: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            db.close()


# ===============================
# In-memory store
# ===============================

class InMemoryOrderStore(OrderStore):
    """Dict-backed store with the same semantics as SQLOrderStore."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self._orders: Dict[int, schemas.Order] = {}
        self._next_id = 1

    def create(self, order: schemas.OrderCreate) -> schemas.Order:
        now = self.clock()
        created = schemas.Order(
            id=self._next_id, created_at=now, updated_at=now, **order.model_dump()
        )
        self._orders[created.id] = created
        self._next_id += 1
        return created.model_copy()

    def get_all(self) -> List[schemas.Order]:
        return [o.model_copy() for _, o in sorted(self._orders.items())]

    def get_by_id(self, order_id: int) -> Optional[schemas.Order]:
        order = self._orders.get(order_id)
        return order.model_copy() if order else None

    def update(self, order_id: int, order: schemas.OrderUpdate) -> schemas.Order:
        now = self.clock()
        existing = self._orders.get(order_id)
        if existing is None:
            return schemas.Order(id=order_id, updated_at=now, **order.model_dump())
        updated = existing.model_copy(update={**order.model_dump(), "updated_at": now})
        self._orders[order_id] = updated
        return updated.model_copy()

    def delete(self, order_id: int) -> None:
        self._orders.pop(order_id, None)
