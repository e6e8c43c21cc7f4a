"""
Record store access.

All entity data lives in a hosted record store. Rows are flat dicts keyed by
column name, grouped in tables (student, course, faculty, schedule,
enrollment), each row identified by an integer "Id".

Two implementations share one interface:

- RemoteRecordStore: JSON over HTTP (requests)
- MemoryRecordStore: tables seeded from the packaged mock JSON files and kept
  in memory for the lifetime of the process; changes are never written back

Batch writes can partially fail. The failed rows are logged and reported in
BatchResult.failed; the rest of the batch still counts as written.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import requests

from collegeadmin.errors import RecordStoreError


logger = logging.getLogger(__name__)

RECORD_MISSING = "Record does not exist"


@dataclass
class RecordFailure:
    record: dict[str, Any]
    message: str
    errors: list[dict[str, str]] = field(default_factory=list)

    def describe(self) -> str:
        details = "; ".join(f"{e.get('fieldLabel', '?')}: {e.get('message', '')}" for e in self.errors)
        return f"{self.message} ({details})" if details else self.message


@dataclass
class BatchResult:
    succeeded: list[dict[str, Any]] = field(default_factory=list)
    failed: list[RecordFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def first(self) -> Optional[dict[str, Any]]:
        return self.succeeded[0] if self.succeeded else None


def _log_failures(action: str, table: str, result: BatchResult) -> None:
    if not result.failed:
        return
    logger.warning(
        "%s %s: %d of %d records failed",
        action,
        table,
        len(result.failed),
        len(result.failed) + len(result.succeeded),
    )
    for failure in result.failed:
        logger.error("%s %s failed: %s", action, table, failure.describe())


# ---------------------------------------------------------------------------
# Remote store
# ---------------------------------------------------------------------------


class RemoteRecordStore:
    """
    Record store client for the hosted backend.

    Endpoints (relative to base_url):
        POST   tables/<table>/records/query   {"fields": [...], "where": [...]}
        GET    tables/<table>/records/<id>    ?fields=a,b,c
        POST   tables/<table>/records         {"records": [...]}
        PATCH  tables/<table>/records         {"records": [...]}  (each with Id)
        DELETE tables/<table>/records         {"RecordIds": [...]}

    Every response carries "success" and "message"; writes add one entry per
    row in "results".
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        project_id: str = "",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"
        if project_id:
            self.session.headers["X-Project-Id"] = project_id

    def _url(self, table: str, *parts: str) -> str:
        return "/".join([self.base_url, "tables", table, "records", *parts])

    def _request(self, method: str, url: str, missing_ok: bool = False, **kwargs: Any) -> Optional[dict[str, Any]]:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if missing_ok and resp.status_code == 404:
                return None
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise RecordStoreError(f"Record store request failed: {e}") from e
        except ValueError as e:
            logger.error("%s %s returned invalid JSON: %s", method, url, e)
            raise RecordStoreError("Record store returned an invalid response") from e

        if not isinstance(payload, dict):
            raise RecordStoreError("Record store returned an invalid response")
        if not payload.get("success", False):
            message = str(payload.get("message") or "Record store request was rejected")
            if missing_ok and message == RECORD_MISSING:
                return None
            logger.error("%s %s rejected: %s", method, url, message)
            raise RecordStoreError(message, details=payload)
        return payload

    def fetch_records(
        self, table: str, fields: Iterable[str], where: Optional[Mapping[str, Any]] = None
    ) -> list[dict[str, Any]]:
        body: dict[str, Any] = {"fields": list(fields)}
        if where:
            body["where"] = [
                {"FieldName": name, "Operator": "EqualTo", "Values": [value]} for name, value in where.items()
            ]
        payload = self._request("POST", self._url(table, "query"), json=body)
        data = payload.get("data") or []
        return [row for row in data if isinstance(row, dict)]

    def get_record(self, table: str, record_id: int, fields: Iterable[str]) -> Optional[dict[str, Any]]:
        payload = self._request(
            "GET", self._url(table, str(record_id)), missing_ok=True, params={"fields": ",".join(fields)}
        )
        data = payload.get("data") if payload else None
        return data if isinstance(data, dict) else None

    def _write(self, method: str, table: str, action: str, rows: list[dict[str, Any]], body: dict[str, Any]) -> BatchResult:
        payload = self._request(method, self._url(table), json=body)
        result = BatchResult()
        for i, item in enumerate(payload.get("results") or []):
            sent = rows[i] if i < len(rows) else {}
            if item.get("success"):
                data = item.get("data")
                result.succeeded.append(data if isinstance(data, dict) else dict(sent))
            else:
                result.failed.append(
                    RecordFailure(
                        record=sent,
                        message=str(item.get("message") or f"{action} failed"),
                        errors=list(item.get("errors") or []),
                    )
                )
        _log_failures(action, table, result)
        return result

    def create_records(self, table: str, records: list[dict[str, Any]]) -> BatchResult:
        return self._write("POST", table, "create", records, {"records": records})

    def update_records(self, table: str, records: list[dict[str, Any]]) -> BatchResult:
        return self._write("PATCH", table, "update", records, {"records": records})

    def delete_records(self, table: str, record_ids: list[int]) -> BatchResult:
        rows = [{"Id": rid} for rid in record_ids]
        return self._write("DELETE", table, "delete", rows, {"RecordIds": list(record_ids)})


# ---------------------------------------------------------------------------
# In-memory store (mock data)
# ---------------------------------------------------------------------------


def _same(a: Any, b: Any) -> bool:
    # "2024" matches 2024: filters often come straight from user input
    return a == b or (a is not None and b is not None and str(a) == str(b))


def _project(row: dict[str, Any], fields: Optional[list[str]]) -> dict[str, Any]:
    if fields is None:
        return copy.deepcopy(row)
    out = {"Id": row.get("Id")}
    for name in fields:
        if name in row:
            out[name] = copy.deepcopy(row[name])
    return out


class MemoryRecordStore:
    """
    Drop-in replacement for RemoteRecordStore backed by mock JSON tables.

    Tables are loaded lazily from <data_dir>/<table>.json (a JSON list of
    flat rows). A missing or broken file is an empty table.
    """

    def __init__(self, data_dir: str | Path | None = None, tables: Optional[Mapping[str, list[dict[str, Any]]]] = None):
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self._tables: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.RLock()
        for name, rows in (tables or {}).items():
            self._tables[name] = copy.deepcopy(list(rows))

    def _load_table(self, table: str) -> list[dict[str, Any]]:
        if self.data_dir is None:
            return []
        path = self.data_dir / f"{table}.json"
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Could not load mock table %s from %s: %s", table, path, e)
            return []
        if not isinstance(data, list):
            logger.error("Mock table %s is not a list: %s", table, path)
            return []
        return [row for row in data if isinstance(row, dict)]

    def _rows(self, table: str) -> list[dict[str, Any]]:
        if table not in self._tables:
            self._tables[table] = self._load_table(table)
        return self._tables[table]

    def _index_of(self, table: str, record_id: Any) -> int:
        for i, row in enumerate(self._rows(table)):
            if _same(row.get("Id"), record_id):
                return i
        return -1

    def fetch_records(
        self, table: str, fields: Iterable[str], where: Optional[Mapping[str, Any]] = None
    ) -> list[dict[str, Any]]:
        wanted = list(fields)
        with self._lock:
            rows = self._rows(table)
            if where:
                rows = [r for r in rows if all(_same(r.get(k), v) for k, v in where.items())]
            return [_project(r, wanted) for r in rows]

    def get_record(self, table: str, record_id: int, fields: Iterable[str]) -> Optional[dict[str, Any]]:
        with self._lock:
            idx = self._index_of(table, record_id)
            if idx == -1:
                return None
            return _project(self._rows(table)[idx], list(fields))

    def create_records(self, table: str, records: list[dict[str, Any]]) -> BatchResult:
        result = BatchResult()
        with self._lock:
            rows = self._rows(table)
            for record in records:
                next_id = max([int(r.get("Id") or 0) for r in rows] + [0]) + 1
                row = {k: copy.deepcopy(v) for k, v in record.items() if k != "Id"}
                row["Id"] = next_id
                rows.append(row)
                result.succeeded.append(copy.deepcopy(row))
        return result

    def update_records(self, table: str, records: list[dict[str, Any]]) -> BatchResult:
        result = BatchResult()
        with self._lock:
            rows = self._rows(table)
            for record in records:
                idx = self._index_of(table, record.get("Id"))
                if idx == -1:
                    result.failed.append(RecordFailure(record=record, message=RECORD_MISSING))
                    continue
                rows[idx].update({k: copy.deepcopy(v) for k, v in record.items() if k != "Id"})
                result.succeeded.append(copy.deepcopy(rows[idx]))
        _log_failures("update", table, result)
        return result

    def delete_records(self, table: str, record_ids: list[int]) -> BatchResult:
        result = BatchResult()
        with self._lock:
            rows = self._rows(table)
            for record_id in record_ids:
                idx = self._index_of(table, record_id)
                if idx == -1:
                    result.failed.append(RecordFailure(record={"Id": record_id}, message=RECORD_MISSING))
                    continue
                result.succeeded.append(rows.pop(idx))
        _log_failures("delete", table, result)
        return result


def build_store(settings: Any) -> RemoteRecordStore | MemoryRecordStore:
    """
    Create the store selected by settings.backend.
    """
    settings.validate()
    if settings.backend == "remote":
        return RemoteRecordStore(
            settings.store_url,
            api_key=settings.api_key,
            project_id=settings.project_id,
            timeout=settings.timeout,
        )
    return MemoryRecordStore(settings.data_dir)
