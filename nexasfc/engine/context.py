"""
NexaSFC Evaluation Context
==========================

Immutable variable namespace templates are rendered against.

A context has three layers:

- request: values supplied by the incoming request (params, locale, nonce)
- server:  server-only values, never serialized for the client
- client:  values that are safe to expose through hydration

Unqualified lookups search client, then server, then request. A name can
be pinned to one layer with a ``request.``/``server.``/``client.`` prefix
when no variable of that name shadows the prefix.

Inside ``{{#each}}`` bodies a :class:`LoopContext` overlays the current item
and its position and delegates every other lookup to its parent.

Example:
    ctx = Context(
        request={"locale": "en"},
        server={"user": {"name": "Ada", "roles": ["admin"]}},
        client={"theme": "dark"},
    )
    ctx.lookup("user.roles.0")   # "admin"
    ctx.lookup("client.theme")   # "dark"
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple

LAYERS = ("client", "server", "request")

_MISSING = object()


class LookupContext(Protocol):
    """What the renderer needs from a context."""

    def lookup(self, path: str) -> Any:
        ...

    def current_item(self) -> Any:
        ...

    def current_index(self) -> Optional[int]:
        ...

    def for_item(
        self,
        item: Any,
        index: int,
        length: int,
        key: Any = None,
    ) -> "LookupContext":
        ...


def _freeze(value: Any) -> Any:
    """Recursively copy mappings into read-only views with string keys."""
    if isinstance(value, MappingABC):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def resolve_path(value: Any, path: str) -> Any:
    """
    Walk a dotted path through mappings, sequences and attributes.

    Returns ``None`` for any segment that cannot be resolved.
    """
    current = value
    for segment in path.split("."):
        current = _step(current, segment)
        if current is _MISSING:
            return None
    return current


def _step(current: Any, segment: str) -> Any:
    if current is None:
        return _MISSING
    if isinstance(current, MappingABC):
        return current.get(segment, _MISSING)
    if isinstance(current, (list, tuple)):
        if segment.isdigit():
            index = int(segment)
            return current[index] if index < len(current) else _MISSING
        if segment == "length":
            return len(current)
        return _MISSING
    if isinstance(current, str) or segment.startswith("_"):
        return _MISSING
    attr = getattr(current, segment, _MISSING)
    if callable(attr):
        return _MISSING
    return attr


class Context:
    """
    Three-layer immutable context.

    Layers are copied on construction, so later changes to the dicts passed
    in do not leak into renders.
    """

    __slots__ = ("_request", "_server", "_client", "_merged")

    def __init__(
        self,
        request: Optional[Mapping[str, Any]] = None,
        server: Optional[Mapping[str, Any]] = None,
        client: Optional[Mapping[str, Any]] = None,
    ) -> None:
        object.__setattr__(self, "_request", _freeze(request or {}))
        object.__setattr__(self, "_server", _freeze(server or {}))
        object.__setattr__(self, "_client", _freeze(client or {}))

        merged: Dict[str, Any] = {}
        merged.update(self._request)
        merged.update(self._server)
        merged.update(self._client)
        object.__setattr__(self, "_merged", MappingProxyType(merged))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Context is immutable")

    @classmethod
    def minimal(cls, **client: Any) -> "Context":
        """Context with only client values, handy for fragments and tests."""
        return cls(client=client)

    @property
    def request(self) -> Mapping[str, Any]:
        return self._request

    @property
    def server(self) -> Mapping[str, Any]:
        return self._server

    @property
    def client(self) -> Mapping[str, Any]:
        return self._client

    @property
    def merged(self) -> Mapping[str, Any]:
        return self._merged

    def layer(self, name: str) -> Mapping[str, Any]:
        if name not in LAYERS:
            raise KeyError(name)
        return getattr(self, f"_{name}")

    def lookup(self, path: str) -> Any:
        """
        Resolve a dotted path.

        Args:
            path: Variable path such as ``user.name`` or ``items.0.title``

        Returns:
            The value, or ``None`` when any segment is missing
        """
        if not path:
            return None
        head, _, rest = path.partition(".")

        if head in self._merged:
            value = self._merged[head]
            return resolve_path(value, rest) if rest else value

        if head in LAYERS:
            layer = self.layer(head)
            return resolve_path(layer, rest) if rest else layer

        return None

    def get(self, path: str, default: Any = None) -> Any:
        value = self.lookup(path)
        return default if value is None else value

    def has(self, path: str) -> bool:
        return self.lookup(path) is not None

    def current_item(self) -> Any:
        return None

    def current_index(self) -> Optional[int]:
        return None

    def for_item(
        self,
        item: Any,
        index: int,
        length: int,
        key: Any = None,
    ) -> "LoopContext":
        return LoopContext(self, item, index, length, key)

    def merge(
        self,
        request: Optional[Mapping[str, Any]] = None,
        server: Optional[Mapping[str, Any]] = None,
        client: Optional[Mapping[str, Any]] = None,
    ) -> "Context":
        """Return a new context with extra values layered on top."""
        return Context(
            request={**self._request, **(request or {})},
            server={**self._server, **(server or {})},
            client={**self._client, **(client or {})},
        )

    def __repr__(self) -> str:
        return (
            f"<Context request={list(self._request)} "
            f"server={list(self._server)} client={list(self._client)}>"
        )


class LoopContext:
    """
    Per-iteration overlay used inside ``{{#each}}`` bodies.

    Owns ``this``/``.``, ``@index``, ``@first``, ``@last``, ``@key`` and the
    keys of a mapping item; everything else goes to the parent.
    """

    __slots__ = ("parent", "item", "index", "length", "key")

    def __init__(
        self,
        parent: LookupContext,
        item: Any,
        index: int,
        length: int,
        key: Any = None,
    ) -> None:
        object.__setattr__(self, "parent", parent)
        object.__setattr__(self, "item", item)
        object.__setattr__(self, "index", index)
        object.__setattr__(self, "length", length)
        object.__setattr__(self, "key", key)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("LoopContext is immutable")

    def _special(self) -> Tuple[Tuple[str, Any], ...]:
        return (
            ("@index", self.index),
            ("@first", self.index == 0),
            ("@last", self.index == self.length - 1),
            ("@key", self.key),
        )

    def lookup(self, path: str) -> Any:
        if not path:
            return None
        if path in ("this", "."):
            return self.item
        if path.startswith("this."):
            return resolve_path(self.item, path[5:])

        for name, value in self._special():
            if path == name:
                return value

        head = path.partition(".")[0]
        if isinstance(self.item, MappingABC) and head in self.item:
            return resolve_path(self.item, path)

        return self.parent.lookup(path)

    def current_item(self) -> Any:
        return self.item

    def current_index(self) -> Optional[int]:
        return self.index

    def for_item(
        self,
        item: Any,
        index: int,
        length: int,
        key: Any = None,
    ) -> "LoopContext":
        return LoopContext(self, item, index, length, key)

    @property
    def client(self) -> Mapping[str, Any]:
        return self.parent.client  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"<LoopContext index={self.index} item={self.item!r}>"
