"""Observable records: an attribute store with change events and persistence."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from copy import deepcopy
import logging
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from .events import EventBus, EventKind, Subscription, attribute_event
from .exceptions import NotFoundError, PersistenceError, TaskTermError, ValidationError
from .persistence import PersistenceAdapter

LOGGER = logging.getLogger(__name__)

Attributes = dict[str, Any]

_UNSET = object()


class Record(Protocol):
    """What a collection needs from its members."""

    @property
    def id(self) -> str | None: ...

    adapter: PersistenceAdapter | None

    def get(self, name: str, default: Any = None) -> Any: ...

    def on(self, event_name: str, handler: Callable[..., Any]) -> Subscription: ...

    def off(self, target: Any, event_name: str | None = None) -> int: ...

    def save(self, attributes: Mapping[str, Any] | None = None) -> Awaitable[Any]: ...

    def destroy(self) -> Awaitable[None]: ...


def _schema_defaults(schema: type[BaseModel] | None) -> Attributes:
    if schema is None:
        return {}
    defaults: Attributes = {}
    for name, field in schema.model_fields.items():
        if field.is_required():
            continue
        defaults[name] = field.get_default(call_default_factory=True)
    return defaults


def _format_errors(exc: PydanticValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "__root__"
        errors.setdefault(location, str(item.get("msg", "invalid value")))
    return errors


class AttributeStore:
    """Attribute map with change detection, events, save and destroy.

    Records compose this rather than inherit from it. ``owner`` is the object
    passed as ``record`` in every event payload (defaults to the store).
    """

    def __init__(
        self,
        schema: type[BaseModel] | None = None,
        attributes: Mapping[str, Any] | None = None,
        *,
        record_id: str | None = None,
        adapter: PersistenceAdapter | None = None,
        owner: Any = None,
    ) -> None:
        self.schema = schema
        self.adapter = adapter
        self._owner = owner if owner is not None else self
        self._id = record_id
        self._attributes: Attributes = {
            **_schema_defaults(schema),
            **dict(attributes or {}),
        }
        self._bus = EventBus()
        self._sync_lock = asyncio.Lock()
        self._pending_destroy: asyncio.Future[None] | None = None
        self._destroyed = False

    def __repr__(self) -> str:
        return f"<AttributeStore id={self._id!r} {self._attributes!r}>"

    @property
    def id(self) -> str | None:
        """Storage id; ``None`` until the first successful create."""
        return self._id

    @property
    def is_new(self) -> bool:
        return self._id is None

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def attributes(self) -> Attributes:
        """Return a copy of the current attribute map."""
        return deepcopy(self._attributes)

    def get(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def has(self, name: str) -> bool:
        return self._attributes.get(name) is not None

    def to_dict(self) -> Attributes:
        return deepcopy(self._attributes)

    def on(self, event_name: str | EventKind, handler: Callable[..., Any]) -> Subscription:
        return self._bus.on(event_name, handler)

    def off(self, target: Any, event_name: str | EventKind | None = None) -> int:
        return self._bus.off(target, event_name)

    def listener_count(self) -> int:
        return self._bus.listener_count()

    def validate(self, attributes: Mapping[str, Any] | None = None) -> Attributes:
        """Return the normalized values of ``attributes`` merged over current ones.

        Raises :class:`ValidationError` when the schema rejects the result.
        Keys the schema does not declare pass through untouched.
        """
        candidate = {**self._attributes, **dict(attributes or {})}
        if self.schema is None:
            return candidate
        try:
            validated = self.schema.model_validate(candidate)
        except PydanticValidationError as exc:
            errors = _format_errors(exc)
            raise ValidationError(
                "Invalid attributes: "
                + ", ".join(f"{key}: {msg}" for key, msg in errors.items()),
                errors,
            ) from None
        normalized = validated.model_dump()
        return {**candidate, **normalized}

    def set(self, attributes: Mapping[str, Any]) -> list[str]:
        """Merge ``attributes`` and announce the keys whose value changed.

        Emits ``change:<name>`` for each changed key in the order supplied,
        then one ``change``. Returns the changed keys.
        """
        incoming = dict(attributes)
        if not incoming:
            return []
        normalized = self.validate(incoming)

        changed: list[str] = []
        for key in incoming:
            value = normalized.get(key, incoming[key])
            if self._attributes.get(key, _UNSET) != value:
                changed.append(key)
        if not changed:
            return []

        for key in changed:
            self._attributes[key] = deepcopy(normalized.get(key, incoming[key]))
        for key in changed:
            self._bus.emit(attribute_event(key), self._owner, self._attributes[key])
        self._bus.emit(EventKind.CHANGE, self._owner, self.attributes)
        return changed

    def toggle(self, name: str) -> Awaitable[Any]:
        """Save the negation of boolean attribute ``name``."""
        return self.save({name: not bool(self.get(name))})

    def save(self, attributes: Mapping[str, Any] | None = None) -> Awaitable[Any]:
        """Apply ``attributes`` now and return an awaitable that persists them.

        Validation errors are raised immediately, before anything changes.
        The in-memory change is kept even if the storage call later fails.
        """
        if self._destroyed:
            raise NotFoundError("Cannot save a destroyed record.")
        if attributes:
            self.set(attributes)
        else:
            self.validate()
        return self._sync()

    async def _sync(self) -> Any:
        async with self._sync_lock:
            adapter = self._require_adapter()
            payload = self.to_dict()
            try:
                if self._id is None:
                    self._id = await adapter.create(payload)
                    LOGGER.debug(
                        "record.created",
                        extra={
                            "event": "record.created",
                            "namespace": adapter.namespace,
                            "record_id": self._id,
                        },
                    )
                else:
                    await adapter.update(self._id, payload)
            except TaskTermError as exc:
                self._log_failure("save", exc)
                raise
            except Exception as exc:  # noqa: BLE001 - adapter failures surface as PersistenceError.
                self._log_failure("save", exc)
                raise PersistenceError(f"Unable to save record: {exc}") from exc
        return self._owner

    def destroy(self) -> Awaitable[None]:
        """Delete from storage, then emit ``destroy`` once.

        Nothing happens until the returned awaitable runs. Callers that await
        while a delete is in flight share it; once destroyed, further calls are
        no-ops. A failed delete leaves the record in place and allows a retry.
        """
        return self._destroy()

    async def _destroy(self) -> None:
        if self._destroyed:
            return
        if self._pending_destroy is None:
            self._pending_destroy = asyncio.ensure_future(self._delete_and_announce())
        await asyncio.shield(self._pending_destroy)

    async def _delete_and_announce(self) -> None:
        try:
            if self._id is not None:
                async with self._sync_lock:
                    adapter = self._require_adapter()
                    try:
                        await adapter.delete(self._id)
                    except TaskTermError:
                        raise
                    except Exception as exc:  # noqa: BLE001 - see _sync.
                        raise PersistenceError(f"Unable to delete record: {exc}") from exc
        except TaskTermError as exc:
            self._pending_destroy = None
            self._log_failure("destroy", exc)
            raise
        self._destroyed = True
        self._bus.emit(EventKind.DESTROY, self._owner)

    def _require_adapter(self) -> PersistenceAdapter:
        if self.adapter is None:
            raise PersistenceError("Record has no storage adapter.")
        return self.adapter

    def _log_failure(self, operation: str, exc: BaseException) -> None:
        LOGGER.warning(
            f"record.{operation}.failed",
            extra={
                "event": f"record.{operation}.failed",
                "record_id": self._id,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )


class TodoFields(BaseModel):
    """Recognized attributes of a task and their defaults."""

    model_config = ConfigDict(extra="allow")

    text: str = ""
    done: bool = False
    order: int | None = None

    @field_validator("text", mode="before")
    @classmethod
    def _validate_text(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("Task text must not be empty.")
        return normalized


class Todo:
    """A single task item backed by an :class:`AttributeStore`."""

    def __init__(
        self,
        attributes: Mapping[str, Any] | None = None,
        *,
        record_id: str | None = None,
        adapter: PersistenceAdapter | None = None,
    ) -> None:
        self.store = AttributeStore(
            TodoFields,
            attributes,
            record_id=record_id,
            adapter=adapter,
            owner=self,
        )

    def __repr__(self) -> str:
        return f"Todo(id={self.id!r}, text={self.text!r}, done={self.done}, order={self.order})"

    @property
    def id(self) -> str | None:
        return self.store.id

    @property
    def is_new(self) -> bool:
        return self.store.is_new

    @property
    def adapter(self) -> PersistenceAdapter | None:
        return self.store.adapter

    @adapter.setter
    def adapter(self, value: PersistenceAdapter | None) -> None:
        self.store.adapter = value

    @property
    def text(self) -> str:
        return str(self.store.get("text", ""))

    @property
    def done(self) -> bool:
        return bool(self.store.get("done", False))

    @property
    def order(self) -> int | None:
        """Position key; ``None`` until a collection assigns one."""
        value = self.store.get("order")
        return None if value is None else int(value)

    def get(self, name: str, default: Any = None) -> Any:
        return self.store.get(name, default)

    def set(self, attributes: Mapping[str, Any]) -> list[str]:
        return self.store.set(attributes)

    def save(self, attributes: Mapping[str, Any] | None = None) -> Awaitable[Any]:
        return self.store.save(attributes)

    def destroy(self) -> Awaitable[None]:
        return self.store.destroy()

    def toggle(self) -> Awaitable[Any]:
        """Flip ``done`` and persist it."""
        return self.store.toggle("done")

    def on(self, event_name: str | EventKind, handler: Callable[..., Any]) -> Subscription:
        return self.store.on(event_name, handler)

    def off(self, target: Any, event_name: str | EventKind | None = None) -> int:
        return self.store.off(target, event_name)

    def to_dict(self) -> Attributes:
        return self.store.to_dict()
