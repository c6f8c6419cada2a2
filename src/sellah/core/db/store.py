from __future__ import annotations

import copy
import json
import re
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sellah.core.context import TenantContext
from sellah.errors import NotFoundError, StoreError

from .migrations import apply_migrations, connect_db

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

KNOWN_COLLECTIONS = [
    "orders",
    "products",
    "order_activities",
    "notifications",
    "stock_activities",
]


def _field_path(name: str) -> str:
    if not _FIELD_RE.match(name):
        raise ValueError(f"Invalid document field name: {name!r}")
    return f"$.{name}"


class DocumentTransaction:
    """Read-modify-write handle for one document inside a store transaction.

    Reads see the transaction's own pending writes.
    """

    def __init__(self, collection: str, doc_id: str, snapshot: dict[str, Any] | None):
        self.collection = collection
        self.doc_id = doc_id
        self._snapshot = snapshot
        self.pending: dict[str, Any] | None = None

    @property
    def exists(self) -> bool:
        return self.pending is not None or self._snapshot is not None

    def get(self) -> dict[str, Any] | None:
        current = self.pending if self.pending is not None else self._snapshot
        if current is None:
            return None
        data = copy.deepcopy(current)
        data["id"] = self.doc_id
        return data

    def set(self, data: dict[str, Any]) -> None:
        payload = copy.deepcopy(data)
        payload.pop("id", None)
        self.pending = payload

    def update(self, fields: dict[str, Any]) -> None:
        current = self.pending if self.pending is not None else self._snapshot
        if current is None:
            raise NotFoundError(self.collection, self.doc_id)
        merged = copy.deepcopy(current)
        merged.update(copy.deepcopy(fields))
        merged.pop("id", None)
        self.pending = merged


class DocumentStore:
    """JSON documents keyed by (tenant, collection, id) on top of SQLite."""

    def __init__(self, db_path: Path, timeout_sec: float = 5.0):
        self.db_path = db_path
        try:
            self.connection = connect_db(db_path, timeout_sec=timeout_sec)
        except sqlite3.Error as exc:
            raise StoreError("connect", str(exc)) from exc

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def migrate(self) -> list[str]:
        migrations_dir = Path(__file__).parent / "migrations"
        return apply_migrations(self.connection, migrations_dir)

    @staticmethod
    def _to_json(payload: dict[str, Any]) -> str:
        return json.dumps(payload, ensure_ascii=False)

    @staticmethod
    def _from_row(row: sqlite3.Row) -> dict[str, Any]:
        data = json.loads(row["data_json"])
        data["id"] = row["doc_id"]
        return data

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise StoreError(operation, str(exc)) from exc

    def _read(self, context: TenantContext, collection: str, doc_id: str) -> dict[str, Any] | None:
        row = self.connection.execute(
            "SELECT data_json FROM documents WHERE tenant_id = ? AND collection = ? AND doc_id = ?",
            (context.tenant_id, collection, doc_id),
        ).fetchone()
        if row is None:
            return None
        return json.loads(row["data_json"])

    def _write(self, context: TenantContext, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        payload = dict(data)
        payload.pop("id", None)
        self.connection.execute(
            """
            INSERT INTO documents (tenant_id, collection, doc_id, data_json)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(tenant_id, collection, doc_id) DO UPDATE SET
                data_json = excluded.data_json,
                updated_at = CURRENT_TIMESTAMP
            """,
            (context.tenant_id, collection, doc_id, self._to_json(payload)),
        )

    def get(self, context: TenantContext, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._guard("get"):
            data = self._read(context, collection, doc_id)
        if data is None:
            return None
        data["id"] = doc_id
        return data

    def set(self, context: TenantContext, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._guard("set"), self.connection:
            self._write(context, collection, doc_id, data)

    def add(self, context: TenantContext, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        with self._guard("add"), self.connection:
            self.connection.execute(
                "INSERT INTO documents (tenant_id, collection, doc_id, data_json) VALUES (?, ?, ?, ?)",
                (context.tenant_id, collection, doc_id, self._to_json({k: v for k, v in data.items() if k != "id"})),
            )
        return doc_id

    def update(
        self,
        context: TenantContext,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        with self.transaction(context, collection, doc_id) as txn:
            txn.update(fields)
            updated = txn.get() or {}
        return updated

    @contextmanager
    def transaction(
        self,
        context: TenantContext,
        collection: str,
        doc_id: str,
    ) -> Iterator[DocumentTransaction]:
        with self._guard("begin"):
            self.connection.execute("BEGIN IMMEDIATE")
        try:
            txn = DocumentTransaction(collection, doc_id, self._read(context, collection, doc_id))
            yield txn
            if txn.pending is not None:
                self._write(context, collection, doc_id, txn.pending)
            self.connection.commit()
        except sqlite3.Error as exc:
            self.connection.rollback()
            raise StoreError("transaction", str(exc)) from exc
        except BaseException:
            self.connection.rollback()
            raise

    def _where_clause(
        self,
        context: TenantContext,
        collection: str,
        where: dict[str, Any] | None,
    ) -> tuple[str, list[Any]]:
        clauses = ["tenant_id = ?", "collection = ?"]
        params: list[Any] = [context.tenant_id, collection]
        for field_name, value in (where or {}).items():
            path = _field_path(field_name)
            if value is None:
                clauses.append("json_extract(data_json, ?) IS NULL")
                params.append(path)
            elif value is False:
                # an absent flag reads as false
                clauses.append("IFNULL(json_extract(data_json, ?), 0) = 0")
                params.append(path)
            else:
                clauses.append("json_extract(data_json, ?) = ?")
                params.extend([path, value])
        return " AND ".join(clauses), params

    def query(
        self,
        context: TenantContext,
        collection: str,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        clause, params = self._where_clause(context, collection, where)
        direction = "DESC" if descending else "ASC"
        sql = f"SELECT doc_id, data_json FROM documents WHERE {clause}"
        if order_by:
            sql += f" ORDER BY json_extract(data_json, ?) {direction}, rowid {direction}"
            params.append(_field_path(order_by))
        else:
            sql += f" ORDER BY rowid {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._guard("query"):
            rows = self.connection.execute(sql, params).fetchall()
        return [self._from_row(row) for row in rows]

    def count(
        self,
        context: TenantContext,
        collection: str,
        where: dict[str, Any] | None = None,
    ) -> int:
        clause, params = self._where_clause(context, collection, where)
        with self._guard("count"):
            row = self.connection.execute(
                f"SELECT COUNT(*) AS cnt FROM documents WHERE {clause}",
                params,
            ).fetchone()
        return int(row["cnt"])

    def fetch_counts(self, context: TenantContext) -> dict[str, int]:
        return {collection: self.count(context, collection) for collection in KNOWN_COLLECTIONS}
