"""Storage adapters that keep task records outside the process."""

from __future__ import annotations

import asyncio
from copy import deepcopy
import json
import logging
import os
from pathlib import Path
import re
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4

from .exceptions import NotFoundError, PersistenceError, PersistenceFormatError

LOGGER = logging.getLogger(__name__)

NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

Attributes = dict[str, Any]


@runtime_checkable
class PersistenceAdapter(Protocol):
    """Durable record storage for one namespace.

    Every operation is a coroutine; callers await completion before treating
    the dependent save/destroy/fetch as finished.
    """

    namespace: str

    async def create(self, attributes: Attributes) -> str: ...

    async def read(self, record_id: str) -> Attributes: ...

    async def update(self, record_id: str, attributes: Attributes) -> None: ...

    async def delete(self, record_id: str) -> None: ...

    async def list(self) -> list[tuple[str, Attributes]]: ...


def _validate_namespace(namespace: str) -> str:
    normalized = namespace.strip() if isinstance(namespace, str) else ""
    if not NAMESPACE_PATTERN.match(normalized):
        raise ValueError(f"Invalid storage namespace {namespace!r}.")
    return normalized


def _new_id() -> str:
    return uuid4().hex


class MemoryAdapter:
    """Keep records in a dict; used by tests and the ``memory`` backend."""

    def __init__(self, namespace: str = "todos") -> None:
        self.namespace = _validate_namespace(namespace)
        self._records: dict[str, Attributes] = {}

    async def create(self, attributes: Attributes) -> str:
        record_id = _new_id()
        self._records[record_id] = deepcopy(attributes)
        return record_id

    async def read(self, record_id: str) -> Attributes:
        try:
            return deepcopy(self._records[record_id])
        except KeyError:
            raise NotFoundError(f"No record {record_id!r} in {self.namespace!r}.") from None

    async def update(self, record_id: str, attributes: Attributes) -> None:
        if record_id not in self._records:
            raise NotFoundError(f"No record {record_id!r} in {self.namespace!r}.")
        self._records[record_id] = deepcopy(attributes)

    async def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is None:
            raise NotFoundError(f"No record {record_id!r} in {self.namespace!r}.")

    async def list(self) -> list[tuple[str, Attributes]]:
        return [(key, deepcopy(value)) for key, value in self._records.items()]

    def __len__(self) -> int:
        return len(self._records)


class JsonFileAdapter:
    """Store a namespace as one JSON object keyed by record id.

    The file lives at ``<directory>/<namespace>.json``. Writes go through a
    temporary file and ``os.replace`` so a crash never leaves a half-written
    payload behind.
    """

    def __init__(self, namespace: str, directory: str | Path) -> None:
        self.namespace = _validate_namespace(namespace)
        self.directory = Path(directory).expanduser()
        self.path = self.directory / f"{self.namespace}.json"
        self._lock = asyncio.Lock()

    def _enforce_permissions(self, path: Path, mode: int = 0o600) -> None:
        """Set POSIX permissions on a file or directory; silently ignores failures."""
        if os.name != "posix":
            return
        try:
            path.chmod(mode)
        except OSError:
            pass

    def _ensure_paths(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._enforce_permissions(self.directory, 0o700)

    def _read_records(self) -> dict[str, Attributes]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PersistenceFormatError(
                f"Storage file {self.path} is not valid JSON: {exc}"
            ) from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise PersistenceFormatError(f"Storage file {self.path} is not an object.")
        records: dict[str, Attributes] = {}
        for key, value in payload.items():
            if not isinstance(value, dict):
                raise PersistenceFormatError(
                    f"Record {key!r} in {self.path} is not an object."
                )
            records[str(key)] = value
        return records

    def _write_records(self, records: dict[str, Attributes]) -> None:
        try:
            self._ensure_paths()
            temp_path = self.path.with_suffix(".json.tmp")
            temp_path.write_text(
                json.dumps(records, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            self._enforce_permissions(temp_path)
            os.replace(temp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Unable to write {self.path}: {exc}") from exc

    async def _load(self) -> dict[str, Attributes]:
        return await asyncio.to_thread(self._read_records)

    async def _store(self, records: dict[str, Attributes]) -> None:
        await asyncio.to_thread(self._write_records, records)
        LOGGER.debug(
            "storage.write",
            extra={
                "event": "storage.write",
                "namespace": self.namespace,
                "records": len(records),
            },
        )

    async def create(self, attributes: Attributes) -> str:
        async with self._lock:
            records = await self._load()
            record_id = _new_id()
            records[record_id] = dict(attributes)
            await self._store(records)
            return record_id

    async def read(self, record_id: str) -> Attributes:
        async with self._lock:
            records = await self._load()
        try:
            return records[record_id]
        except KeyError:
            raise NotFoundError(f"No record {record_id!r} in {self.namespace!r}.") from None

    async def update(self, record_id: str, attributes: Attributes) -> None:
        async with self._lock:
            records = await self._load()
            if record_id not in records:
                raise NotFoundError(f"No record {record_id!r} in {self.namespace!r}.")
            records[record_id] = dict(attributes)
            await self._store(records)

    async def delete(self, record_id: str) -> None:
        async with self._lock:
            records = await self._load()
            if records.pop(record_id, None) is None:
                raise NotFoundError(f"No record {record_id!r} in {self.namespace!r}.")
            await self._store(records)

    async def list(self) -> list[tuple[str, Attributes]]:
        async with self._lock:
            records = await self._load()
        return list(records.items())


def build_adapter(
    storage_config: dict[str, Any], namespace: str | None = None
) -> PersistenceAdapter:
    """Construct the adapter selected by the ``[storage]`` config section."""
    backend = str(storage_config.get("backend", "json")).strip().lower()
    target_namespace = namespace or str(storage_config.get("namespace", "todos"))
    if backend == "memory":
        return MemoryAdapter(target_namespace)
    if backend == "json":
        return JsonFileAdapter(
            target_namespace, str(storage_config.get("directory", "."))
        )
    raise ValueError(f"Unsupported storage backend {backend!r}.")
