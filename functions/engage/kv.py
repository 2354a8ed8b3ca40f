"""
Real-time key-value tree used for live quiz rooms.

Values are JSON and addressed by slash-separated paths (`games/ABC123/players`).
The first two segments form the root key: every write reads and replaces the
whole root atomically, and subscribers of a root hear about every write below
it.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

from engage.errors import InvalidInputError
from engage.feed import ChangeFeed, InMemoryChangeFeed

logger = logging.getLogger(__name__)

ValueListener = Callable[[Any], None]


class KeyValueStore(Protocol):
    def get(self, path: str) -> Any:
        ...

    def set(self, path: str, value: Any) -> None:
        ...

    def update(self, path: str, changes: dict) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...

    def transact(self, path: str, fn: Callable[[Any], Any]) -> Any:
        ...

    def watch(self, path: str, listener: ValueListener) -> Callable[[], None]:
        ...


def _split(path: str) -> tuple[str, List[str]]:
    parts = [part for part in path.strip("/").split("/") if part]
    if len(parts) < 2:
        raise InvalidInputError(f"Path needs at least two segments: {path!r}")
    return "/".join(parts[:2]), parts[2:]


def _read(tree: Any, parts: List[str]) -> Any:
    node = tree
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _write(tree: Any, parts: List[str], value: Any) -> Any:
    """Returns the new tree with `value` at `parts`; None deletes."""
    if not parts:
        return None if value == {} else copy.deepcopy(value)
    root = dict(tree) if isinstance(tree, dict) else {}
    child = _write(root.get(parts[0]), parts[1:], value)
    if child is None or child == {}:
        root.pop(parts[0], None)
    else:
        root[parts[0]] = child
    return root or None


def _merge(tree: Any, parts: List[str], changes: dict) -> Any:
    for key, value in changes.items():
        tree = _write(tree, parts + [p for p in key.split("/") if p], value)
    return tree


class _BaseKeyValueStore:
    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.feed: ChangeFeed = feed or InMemoryChangeFeed()

    def _load(self, root: str) -> Any:
        raise NotImplementedError

    def _swap(self, root: str, fn: Callable[[Any], Any]) -> Any:
        """Atomically replaces the root value with fn(old) and returns it."""
        raise NotImplementedError

    def get(self, path: str) -> Any:
        root, parts = _split(path)
        return _read(self._load(root), parts)

    def exists(self, path: str) -> bool:
        return self.get(path) is not None

    def set(self, path: str, value: Any) -> None:
        root, parts = _split(path)
        self._swap(root, lambda tree: _write(tree, parts, value))
        self._notify(root)

    def update(self, path: str, changes: dict) -> None:
        root, parts = _split(path)
        self._swap(root, lambda tree: _merge(tree, parts, changes))
        self._notify(root)

    def delete(self, path: str) -> None:
        self.set(path, None)

    def transact(self, path: str, fn: Callable[[Any], Any]) -> Any:
        """Replaces the value at `path` with `fn(current)`.

        `fn` may run more than once when another writer races it, so it must
        not have side effects. Returns the value that was written.
        """
        root, parts = _split(path)
        result: Dict[str, Any] = {}

        def apply(tree: Any) -> Any:
            result["value"] = fn(copy.deepcopy(_read(tree, parts)))
            return _write(tree, parts, result["value"])

        self._swap(root, apply)
        self._notify(root)
        return result.get("value")

    def watch(self, path: str, listener: ValueListener) -> Callable[[], None]:
        root, _ = _split(path)
        unsubscribe = self.feed.subscribe(
            f"kv/{root}", lambda _topic, _message: listener(self.get(path))
        )
        listener(self.get(path))
        return unsubscribe

    def _notify(self, root: str) -> None:
        self.feed.publish(f"kv/{root}", {"path": root})


class InMemoryKeyValueStore(_BaseKeyValueStore):
    def __init__(self, feed: Optional[ChangeFeed] = None):
        super().__init__(feed)
        self._lock = threading.RLock()
        self.roots: Dict[str, Any] = {}

    def reset(self) -> None:
        with self._lock:
            self.roots.clear()

    def _load(self, root: str) -> Any:
        with self._lock:
            return copy.deepcopy(self.roots.get(root))

    def _swap(self, root: str, fn: Callable[[Any], Any]) -> Any:
        with self._lock:
            value = fn(copy.deepcopy(self.roots.get(root)))
            if value is None:
                self.roots.pop(root, None)
            else:
                self.roots[root] = value
            return value


@dataclass
class RedisKeyValueStore(_BaseKeyValueStore):
    """Stores each root as one JSON string; writes use WATCH/MULTI."""

    url: str
    key_prefix: str = "engage:kv:"
    feed: Optional[ChangeFeed] = field(default=None)

    def __post_init__(self):
        super().__init__(self.feed)
        self.client = redis.Redis.from_url(self.url)

    def _key(self, root: str) -> str:
        return self.key_prefix + root

    def _load(self, root: str) -> Any:
        try:
            raw = self.client.get(self._key(root))
        except redis_exceptions.ConnectionError:
            logger.warning("Redis read failed for %s, reconnecting", root)
            self.client = redis.Redis.from_url(self.url)
            raw = self.client.get(self._key(root))
        return json.loads(raw) if raw else None

    def _swap(self, root: str, fn: Callable[[Any], Any]) -> Any:
        key = self._key(root)

        def apply(pipe: redis.client.Pipeline) -> Any:
            raw = pipe.get(key)
            value = fn(json.loads(raw) if raw else None)
            pipe.multi()
            if value is None:
                pipe.delete(key)
            else:
                pipe.set(key, json.dumps(value))
            return value

        return self.client.transaction(apply, key, value_from_callable=True)
