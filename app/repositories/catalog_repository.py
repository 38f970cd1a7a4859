"""
app/repositories/catalog_repository.py

SQLAlchemy-backed record stores for the process and product catalogs.

Each upsert runs in its own SAVEPOINT so one failing record does not poison the
surrounding transaction; ``commit`` makes the whole confirm visible at once.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, ClassVar

from sqlalchemy import select
from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.bulk_import import ImportCandidate, ImportTarget, ProcessCandidate, ProductCandidate
from app.domain.import_errors import RecordPersistenceError, StoreUnavailableError
from app.domain.import_schemas import normalize_key
from app.repositories.record_store import UpsertOutcome
from db.base import Base
from db.models.process import Process
from db.models.product import Product

logger = logging.getLogger(__name__)

_KEY_LOOKUP_CHUNK = 500


class CatalogRepository(ABC):
    """
    Keyed catalog persistence shared by every import target.
    """

    model: ClassVar[type[Base]]
    key_attribute: ClassVar[str]

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def exists_by_key(self, key: str) -> bool:
        column = self._key_column()
        stmt = select(column).where(column == normalize_key(key)).limit(1)
        try:
            return self._session.scalar(stmt) is not None
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Key lookup failed: {exc}") from exc

    def find_existing_keys(self, keys: Iterable[str]) -> set[str]:
        wanted = sorted({normalize_key(key) for key in keys if key})
        column = self._key_column()
        found: set[str] = set()
        try:
            for start in range(0, len(wanted), _KEY_LOOKUP_CHUNK):
                chunk = wanted[start : start + _KEY_LOOKUP_CHUNK]
                found.update(self._session.scalars(select(column).where(column.in_(chunk))).all())
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Key lookup failed: {exc}") from exc
        return found

    def get_by_key(self, key: str) -> Any | None:
        stmt = select(self.model).where(self._key_column() == normalize_key(key))
        return self._session.scalar(stmt)

    def list_records(self, *, limit: int = 100) -> list[Any]:
        stmt = select(self.model).order_by(self._key_column()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, candidate: ImportCandidate, *, overwrite: bool) -> UpsertOutcome:
        if not candidate.key:
            raise RecordPersistenceError(f"Row {candidate.row_number} has no key.")
        key = normalize_key(candidate.key)
        values = self.values_from(candidate)

        try:
            with self._session.begin_nested():
                record = self.get_by_key(key)
                if record is None:
                    self._session.add(self.model(**{self.key_attribute: key}, **values))
                    self._session.flush()
                    return UpsertOutcome.CREATED
                if not overwrite:
                    return UpsertOutcome.UNCHANGED
                for name, value in values.items():
                    setattr(record, name, value)
                self._session.flush()
                return UpsertOutcome.UPDATED
        except IntegrityError as exc:
            # A concurrent writer inserted the same key after the lookup.
            if not overwrite and self._key_exists_after_conflict(key):
                return UpsertOutcome.UNCHANGED
            raise RecordPersistenceError(f"Row {candidate.row_number} violates a constraint: {exc.orig}") from exc
        except DataError as exc:
            raise RecordPersistenceError(f"Row {candidate.row_number} has invalid data: {exc.orig}") from exc
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailableError(f"Database unavailable while writing row {candidate.row_number}.") from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Database error while writing row {candidate.row_number}: {exc}") from exc

    def commit(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            raise StoreUnavailableError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        try:
            self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed for %s", type(self).__name__)

    @abstractmethod
    def values_from(self, candidate: ImportCandidate) -> dict[str, Any]:
        """Column values for ``candidate``, excluding the key."""

    def _key_column(self) -> Any:
        return getattr(self.model, self.key_attribute)

    def _key_exists_after_conflict(self, key: str) -> bool:
        try:
            return self.exists_by_key(key)
        except StoreUnavailableError:
            return False


class ProcessRepository(CatalogRepository):
    model = Process
    key_attribute = "codigo"

    def values_from(self, candidate: ImportCandidate) -> dict[str, Any]:
        if not isinstance(candidate, ProcessCandidate):
            raise TypeError(f"Expected ProcessCandidate, got {type(candidate).__name__}.")
        return {"nombre": candidate.name, "costo": candidate.cost}


class ProductRepository(CatalogRepository):
    model = Product
    key_attribute = "sku"

    def values_from(self, candidate: ImportCandidate) -> dict[str, Any]:
        if not isinstance(candidate, ProductCandidate):
            raise TypeError(f"Expected ProductCandidate, got {type(candidate).__name__}.")
        return {
            "name": candidate.name,
            "price_net": candidate.price_net,
            "replacement_cost": candidate.replacement_cost,
            "uom": candidate.uom or "UN",
            "classification": candidate.classification,
            "barcode": candidate.barcode,
            "group_code": candidate.group_code,
            "group_name": candidate.group_name,
            "subgroup_code": candidate.subgroup_code,
            "subgroup_name": candidate.subgroup_name,
            "vat_rate": candidate.vat_rate,
        }


_REPOSITORIES_BY_TARGET: dict[ImportTarget, type[CatalogRepository]] = {
    ImportTarget.PROCESSES: ProcessRepository,
    ImportTarget.PRODUCTS: ProductRepository,
}


def build_catalog_repository(target: ImportTarget, session: Session) -> CatalogRepository:
    return _REPOSITORIES_BY_TARGET[ImportTarget(target)](session)