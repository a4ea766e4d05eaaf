"""Typed bindings between in-memory values and the durable key-value store."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Generic, Optional, Tuple, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from .kvstore import KeyValueStore, StorageError


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Updater = Union[T, Callable[[T], T]]


class DurableSlot(Generic[T]):
    """Hold a value for *key* and mirror every replacement to *backend*.

    Reads fall back to a copy of ``initial`` when nothing is stored or when the
    stored text cannot be decoded. Writes are best effort: a failing backend is
    logged and the in-memory value stays authoritative.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        key: str,
        initial: T,
        value_type: Any,
        *,
        on_change: Optional[Callable[[str, T], None]] = None,
    ) -> None:
        self._backend = backend
        self._key = key
        self._initial = initial
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)
        self._on_change = on_change
        self._value: T = self._load()

    @property
    def key(self) -> str:
        return self._key

    @property
    def value(self) -> T:
        return self._value

    def _default(self) -> T:
        return copy.deepcopy(self._initial)

    def _load(self) -> T:
        try:
            raw = self._backend.get(self._key)
        except StorageError as error:
            LOGGER.warning("Could not read '%s' from durable store: %s", self._key, error)
            return self._default()

        if raw is None:
            return self._default()

        try:
            return self._adapter.validate_json(raw)
        except (ValidationError, ValueError) as error:
            LOGGER.warning(
                "Discarding unreadable value for '%s'; falling back to default (%s)",
                self._key,
                error.__class__.__name__,
            )
            return self._default()

    def _persist(self, value: T) -> bool:
        try:
            serialized = self._adapter.dump_json(value).decode("utf-8")
        except (ValueError, TypeError) as error:
            LOGGER.error("Could not serialise value for '%s': %s", self._key, error)
            return False
        try:
            self._backend.set(self._key, serialized)
        except StorageError as error:
            LOGGER.error("Could not write '%s' to durable store: %s", self._key, error)
            return False
        return True

    def replace(self, new_value: Updater[T]) -> T:
        """Swap the held value and write it through to the backend."""

        if callable(new_value):
            value = new_value(self._value)
        else:
            value = new_value
        self._value = value
        self._persist(value)
        if self._on_change is not None:
            self._on_change(self._key, value)
        return value

    def reload(self) -> T:
        """Re-read the stored value, as a fresh process would."""

        self._value = self._load()
        return self._value


def bind(
    backend: KeyValueStore,
    key: str,
    initial: T,
    value_type: Any,
) -> Tuple[T, Callable[[Updater[T]], T]]:
    """Return the current value for *key* together with its replace function."""

    slot = DurableSlot(backend, key, initial, value_type)
    return slot.value, slot.replace


__all__ = ["DurableSlot", "bind"]
