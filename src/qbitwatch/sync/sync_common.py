"""
Common sync functionality.

Provides the reference-counted polling loop behind every live stream, the
per-consumer subscription it feeds, and the merge helpers shared by the sync
states.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

import anyio
import msgspec
from anyio.abc import TaskGroup

from .. import logger
from ..transport import DecodeException

T = TypeVar("T")

# Fetches the raw sync payload for a rid, or None once the entity is gone
SyncFetch = Callable[[int], Awaitable[dict[str, Any] | None]]

_EMPTY: Any = object()


def merge_entities(
    target: dict[str, dict[str, Any]],
    updates: dict[str, Any] | None,
    removed: list[str] | None,
) -> None:
    """Apply a partial sync update to a keyed collection in place.

    Removals are applied first, then each updated entity is merged field by
    field into the existing one (or added).

    Args:
        target: Entities keyed by id.
        updates: Changed fields keyed by id.
        removed: Ids to drop.
    """
    for key in removed or ():
        target.pop(key, None)
    for key, fields in (updates or {}).items():
        if not isinstance(fields, dict):
            raise DecodeException(f"Expected an object for '{key}', got {fields!r}")
        target.setdefault(key, {}).update(fields)


def section(payload: dict[str, Any], key: str, type_: type) -> Any:
    """Get an optional section of a sync payload, checking its JSON type."""
    value = payload.get(key)
    if value is not None and not isinstance(value, type_):
        raise DecodeException(
            f"Expected '{key}' to be {type_.__name__}, got {type(value).__name__}"
        )
    return value


def convert(raw: Any, type_: type[T]) -> T:
    """Convert raw decoded JSON into a model, raising DecodeException."""
    try:
        return msgspec.convert(raw, type_)
    except msgspec.ValidationError as e:
        raise DecodeException(f"Invalid {type_.__name__} payload: {e}") from e


class SyncState(ABC, Generic[T]):
    """Merge state of one incremental sync endpoint."""

    def __init__(self) -> None:
        self.rid = 0

    def apply(self, payload: dict[str, Any]) -> T:
        """Merge a sync response and return the resulting snapshot.

        Args:
            payload: Decoded sync response.

        Returns:
            T: Immutable snapshot after merging.
        """
        if not isinstance(payload, dict):
            raise DecodeException(
                f"Expected a JSON object, got {type(payload).__name__}"
            )
        if payload.get("full_update"):
            self.replace(payload)
        else:
            self.merge(payload)

        rid = payload.get("rid", self.rid)
        if not isinstance(rid, int):
            raise DecodeException(f"Invalid rid: {rid!r}")
        self.rid = rid
        return self.snapshot(full_update=bool(payload.get("full_update", False)))

    @abstractmethod
    def replace(self, payload: dict[str, Any]) -> None:
        """Replace the held state with a full update."""

    @abstractmethod
    def merge(self, payload: dict[str, Any]) -> None:
        """Merge a partial update into the held state."""

    @abstractmethod
    def snapshot(self, full_update: bool) -> T:
        """Build an immutable snapshot of the held state."""


class Subscription(Generic[T]):
    """One consumer of a SyncLoop.

    Iterating yields the newest snapshot; values arriving faster than they
    are consumed are conflated. Iteration raises the loop's error, or stops
    when the loop completes.
    """

    def __init__(self) -> None:
        self._pending: Any = _EMPTY
        self._error: BaseException | None = None
        self._closed = False
        self._wakeup: anyio.Event | None = None

    def push(self, value: T) -> None:
        self._pending = value
        self._notify()

    def fail(self, error: BaseException) -> None:
        self._error = error
        self._notify()

    def close(self) -> None:
        self._closed = True
        self._notify()

    def _notify(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()
            self._wakeup = None

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        while True:
            if self._pending is not _EMPTY:
                value, self._pending = self._pending, _EMPTY
                return value
            if self._error is not None:
                raise self._error
            if self._closed:
                raise StopAsyncIteration

            self._wakeup = anyio.Event()
            await self._wakeup.wait()


class _Activation(Generic[T]):
    """State of one Stopped -> Polling -> Stopped cycle.

    ``stopped`` is set once the last subscriber leaves; ``running`` stays
    True until the polling task has actually returned.
    """

    def __init__(self) -> None:
        self.stopped = anyio.Event()
        self.running = True
        self.latest: Any = _EMPTY
        self.error: BaseException | None = None
        self.completed = False


class SyncLoop(Generic[T]):
    """Polling loop that runs only while it has subscribers.

    The first subscriber starts a polling task in the given task group with a
    fresh cursor; the last one leaving stops it. A request already in flight
    at that point is left to finish and its result dropped, while cancelling
    the task group aborts it. Every subscriber of the same activation shares
    the same fetches.
    """

    def __init__(
        self,
        name: str,
        fetch: SyncFetch,
        state_factory: Callable[[], SyncState[T]],
        interval: float,
        task_group: Callable[[], TaskGroup],
    ) -> None:
        self.name = name
        self.interval = interval
        self._fetch = fetch
        self._state_factory = state_factory
        self._task_group = task_group
        self._subscriptions: set[Subscription[T]] = set()
        self._activation: _Activation[T] | None = None

    @property
    def is_active(self) -> bool:
        """Whether the current activation is still polling."""
        return self._activation is not None and self._activation.running

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[Subscription[T]]:
        """Subscribe to the loop for the duration of the context.

        Yields:
            Subscription[T]: Async iterator over the loop's snapshots.
        """
        subscription: Subscription[T] = Subscription()
        self._attach(subscription)
        try:
            yield subscription
        finally:
            self._detach(subscription)

    def _attach(self, subscription: Subscription[T]) -> None:
        activation = self._activation
        if activation is None:
            task_group = self._task_group()
            activation = self._activation = _Activation()
            task_group.start_soon(self._run, activation, name=self.name)
            logger.debug("Sync loop %s started", self.name)
        elif activation.error is not None:
            subscription.fail(activation.error)
        else:
            # Replay what the activation already produced
            if activation.latest is not _EMPTY:
                subscription.push(activation.latest)
            if activation.completed:
                subscription.close()

        self._subscriptions.add(subscription)

    def _detach(self, subscription: Subscription[T]) -> None:
        self._subscriptions.discard(subscription)
        if self._subscriptions or self._activation is None:
            return

        self._activation.stopped.set()
        self._activation = None
        logger.debug("Sync loop %s stopped", self.name)

    async def _run(self, activation: _Activation[T]) -> None:
        state = self._state_factory()
        try:
            while not activation.stopped.is_set():
                payload = await self._fetch(state.rid)
                if activation.stopped.is_set():
                    return

                if payload is None:
                    logger.debug("Sync loop %s completed", self.name)
                    activation.completed = True
                    for subscription in self._subscriptions:
                        subscription.close()
                    return

                snapshot = state.apply(payload)
                activation.latest = snapshot
                for subscription in self._subscriptions:
                    subscription.push(snapshot)

                with anyio.move_on_after(self.interval):
                    await activation.stopped.wait()
        except Exception as e:
            if activation.stopped.is_set():
                return
            logger.error("Sync loop %s failed: %s", self.name, e)
            activation.error = e
            for subscription in self._subscriptions:
                subscription.fail(e)
        finally:
            activation.running = False
