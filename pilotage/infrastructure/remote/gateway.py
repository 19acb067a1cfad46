"""
Remote gateway - the only door to the hosted backend database

Table access mirrors the backend's CRUD API (insert/update/delete/select
returning rows); server-side functions are reached through call_rpc().
Every failure is surfaced as RemoteAPIError, the session is rolled back
and nothing is retried.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pilotage.infrastructure.db.session import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

# Server-side functions exposed by the backend, with their argument names
RPC_FUNCTIONS: Dict[str, tuple] = {
    "get_organization_transactions": ("org_id", "filter_type", "current_user_id"),
    "get_organization_members": ("org_id",),
    "get_note_collaborators": ("note_id_param",),
}


class RemoteAPIError(RuntimeError):
    """Erreur de communication avec le backend distant"""
    pass


class RemoteNotFoundError(RemoteAPIError):
    """La ligne demandée n'existe pas (ou n'est pas visible)"""
    pass


class RemoteGateway:
    """
    Thin CRUD + RPC client over the hosted Postgres

    Usage:
        gateway = RemoteGateway(db)
        row = gateway.insert(CategoryModel, name="Loyer", type="expense", organization_id=org_id)
        rows = gateway.call_rpc("get_organization_members", org_id=org_id)
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except RemoteAPIError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Remote %s failed: %s", action, exc)
            raise RemoteAPIError(f"{action} failed") from exc

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def select(
        self,
        model: Type[ModelT],
        *criteria: Any,
        order_by: Sequence[Any] = (),
    ) -> List[ModelT]:
        with self._guard(f"select {model.__tablename__}"):
            query = self.db.query(model)
            if criteria:
                query = query.filter(*criteria)
            if order_by:
                query = query.order_by(*order_by)
            return query.all()

    def get(self, model: Type[ModelT], entity_id: str) -> Optional[ModelT]:
        with self._guard(f"get {model.__tablename__}"):
            return self.db.get(model, entity_id)

    def insert(self, model: Type[ModelT], **values: Any) -> ModelT:
        """Insert one row and return it as stored (server defaults included)."""
        with self._guard(f"insert {model.__tablename__}"):
            row = model(**values)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row

    def insert_many(self, model: Type[ModelT], rows: Sequence[Dict[str, Any]]) -> List[ModelT]:
        with self._guard(f"insert {model.__tablename__}"):
            objects = [model(**values) for values in rows]
            self.db.add_all(objects)
            self.db.commit()
            for obj in objects:
                self.db.refresh(obj)
            return objects

    def update(self, model: Type[ModelT], entity_id: str, **values: Any) -> ModelT:
        """Update one row by primary key and return it."""
        with self._guard(f"update {model.__tablename__}"):
            row = self.db.get(model, entity_id)
            if row is None:
                raise RemoteNotFoundError(f"{model.__tablename__} #{entity_id} not found")
            for key, value in values.items():
                setattr(row, key, value)
            self.db.commit()
            self.db.refresh(row)
            return row

    def delete(self, model: Type[ModelT], entity_id: str) -> None:
        with self._guard(f"delete {model.__tablename__}"):
            row = self.db.get(model, entity_id)
            if row is None:
                raise RemoteNotFoundError(f"{model.__tablename__} #{entity_id} not found")
            self.db.delete(row)
            self.db.commit()

    def delete_where(self, model: Type[ModelT], *criteria: Any) -> int:
        with self._guard(f"delete {model.__tablename__}"):
            count = self.db.query(model).filter(*criteria).delete(synchronize_session=False)
            self.db.commit()
            return count

    # ------------------------------------------------------------------
    # Server-side functions
    # ------------------------------------------------------------------

    def call_rpc(self, name: str, **params: Any) -> List[Dict[str, Any]]:
        """
        Call a backend function and return its rows as dicts

        Raises:
            ValueError: unknown function or unexpected arguments
            RemoteAPIError: the call failed
        """
        expected = RPC_FUNCTIONS.get(name)
        if expected is None:
            raise ValueError(f"Unknown RPC function: {name}")
        if set(params) != set(expected):
            raise ValueError(f"{name} expects arguments {expected}, got {tuple(params)}")

        args = ", ".join(f"{arg} => :{arg}" for arg in expected)
        statement = text(f"SELECT * FROM {name}({args})")
        with self._guard(f"rpc {name}"):
            result = self.db.execute(statement, params)
            return [dict(row._mapping) for row in result]
