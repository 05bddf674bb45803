"""Index store: per-collection document mirror over SQLAlchemy.

Exposes the four operations the sagas rely on (add, get, query, update).
Each call runs in its own short session, so an update is atomic per
document and there are no cross-collection transactions.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from achievo.core.exceptions import AchievoError
from achievo.db.models import COLLECTIONS, DOCUMENT_KEY_ALIASES, Base

log = logging.getLogger(__name__)


class IndexStoreError(AchievoError):
    """The index store rejected or failed an operation."""

    status_code = 500
    code = "index_store_failure"


class IndexStore:
    """Document-style access to the index tables."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _model(self, collection: str) -> type[Base]:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise IndexStoreError(f"Unknown collection: {collection}") from None

    def _attr(self, collection: str, key: str) -> str:
        return DOCUMENT_KEY_ALIASES.get(collection, {}).get(key, key)

    def _to_attrs(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        return {self._attr(collection, k): v for k, v in doc.items()}

    def add(self, collection: str, doc: dict[str, Any]) -> str:
        """Insert a document and return its generated id."""
        model = self._model(collection)
        doc_id = str(uuid.uuid4())
        try:
            with self._session_factory() as db:
                db.add(model(id=doc_id, **self._to_attrs(collection, doc)))
                db.commit()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            log.error(f"Index add to {collection} failed: {e}")
            raise IndexStoreError(f"Failed to add document to {collection}") from e
        log.debug(f"Index add {collection}/{doc_id}")
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document by id, or None."""
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                row = db.get(model, doc_id)
                return row.to_dict() if row is not None else None
        except SQLAlchemyError as e:
            log.error(f"Index get {collection}/{doc_id} failed: {e}")
            raise IndexStoreError(f"Failed to read {collection}/{doc_id}") from e

    def query(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Return documents where ``field == value``, optionally sorted."""
        model = self._model(collection)
        column = getattr(model, self._attr(collection, field), None)
        if column is None:
            raise IndexStoreError(f"Unknown field {field!r} on {collection}")

        stmt = select(model).where(column == value)
        if order_by:
            sort_column = getattr(model, self._attr(collection, order_by), None)
            if sort_column is None:
                raise IndexStoreError(f"Unknown sort field {order_by!r} on {collection}")
            stmt = stmt.order_by(sort_column.desc() if descending else sort_column.asc())

        try:
            with self._session_factory() as db:
                return [row.to_dict() for row in db.scalars(stmt).all()]
        except SQLAlchemyError as e:
            log.error(f"Index query {collection}.{field} failed: {e}")
            raise IndexStoreError(f"Failed to query {collection}") from e

    def list_all(self, collection: str) -> list[dict[str, Any]]:
        """Return every document in a collection."""
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                return [row.to_dict() for row in db.scalars(select(model)).all()]
        except SQLAlchemyError as e:
            log.error(f"Index list {collection} failed: {e}")
            raise IndexStoreError(f"Failed to list {collection}") from e

    def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update to one document and return the result."""
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                row = db.get(model, doc_id)
                if row is None:
                    raise IndexStoreError(f"No document {collection}/{doc_id} to update")
                for key, value in self._to_attrs(collection, partial).items():
                    if not hasattr(model, key):
                        raise IndexStoreError(f"Unknown field {key!r} on {collection}")
                    setattr(row, key, value)
                db.commit()
                return row.to_dict()
        except (SQLAlchemyError, ValueError) as e:
            log.error(f"Index update {collection}/{doc_id} failed: {e}")
            raise IndexStoreError(f"Failed to update {collection}/{doc_id}") from e
