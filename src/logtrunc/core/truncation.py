"""
Byte-bounded string truncation over JSON-shaped event trees.

Two layers:

- ``cut_bytes`` shortens a single string to at most ``max_bytes`` UTF-8 bytes,
  backing off to the previous code point boundary when the byte limit falls
  inside a multi-byte character.
- ``truncate_value`` / ``truncate_fields`` walk dicts and lists depth-first
  on an explicit stack, cutting every over-long string leaf in place and
  reporting whether anything was shortened.

Strings carrying lone surrogates (e.g. from ``surrogateescape`` decoding) are
measured literally with the ``surrogatepass`` handler; they are not repaired.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

# (path parts, original byte length, truncated byte length)
TruncationCallback = Callable[[tuple[Any, ...], int, int], None]

_ENCODING = "utf-8"
_ERRORS = "surrogatepass"


def byte_length(value: str) -> int:
    """Return the UTF-8 encoded length of ``value`` in bytes."""
    if value.isascii():
        return len(value)
    return len(value.encode(_ENCODING, _ERRORS))


def cut_bytes(value: str, max_bytes: int) -> str:
    """Return the longest prefix of ``value`` that fits in ``max_bytes``.

    The result never ends inside a multi-byte sequence, so it always decodes
    cleanly. Strings that already fit are returned unchanged.

    >>> cut_bytes("hello world", 5)
    'hello'
    >>> cut_bytes("héllo", 2)
    'h'
    """
    if max_bytes < 0:
        raise ValueError("max_bytes must be >= 0")
    if value.isascii():
        return value if len(value) <= max_bytes else value[:max_bytes]

    encoded = value.encode(_ENCODING, _ERRORS)
    if len(encoded) <= max_bytes:
        return value

    end = max_bytes
    # encoded[end] is the first dropped byte; a continuation byte (0b10xxxxxx)
    # there means the cut splits a code point
    while end > 0 and encoded[end] & 0xC0 == 0x80:
        end -= 1
    return encoded[:end].decode(_ENCODING, _ERRORS)


class _Frame:
    """One container on the walk stack and the entries still to visit."""

    __slots__ = ("container", "entries", "parent", "key", "changed", "slot")

    def __init__(
        self,
        container: dict | list,
        parent: _Frame | None = None,
        key: Any = None,
        slot: tuple[dict | list, Any] | None = None,
    ) -> None:
        self.container = container
        if isinstance(container, dict):
            self.entries = iter(list(container.items()))
        else:
            self.entries = iter(list(enumerate(container)))
        self.parent = parent
        self.key = key
        self.changed = False
        # (parent, key) to receive the rebuilt tuple when this frame changed
        self.slot = slot

    def path_to(self, key: Any, root_path: tuple[Any, ...]) -> tuple[Any, ...]:
        parts = [key]
        frame = self
        while frame.parent is not None:
            parts.append(frame.key)
            frame = frame.parent
        return (*root_path, *reversed(parts))


def _walk(
    root: dict | list,
    max_bytes: int,
    on_truncate: TruncationCallback | None,
    path: tuple[Any, ...],
) -> bool:
    top = _Frame(root)
    stack = [top]
    active = {id(root)}
    while stack:
        frame = stack[-1]
        entry = next(frame.entries, None)
        if entry is None:
            stack.pop()
            active.discard(id(frame.container))
            if frame.changed:
                if frame.slot is not None:
                    parent, key = frame.slot
                    parent[key] = tuple(frame.container)
                if stack:
                    stack[-1].changed = True
            continue

        key, item = entry
        if isinstance(item, str):
            size = byte_length(item)
            if size > max_bytes:
                cut = cut_bytes(item, max_bytes)
                frame.container[key] = cut
                frame.changed = True
                if on_truncate is not None:
                    on_truncate(frame.path_to(key, path), size, byte_length(cut))
        elif isinstance(item, (dict, list)):
            # Skip back-references to a container already being walked
            if id(item) not in active:
                active.add(id(item))
                stack.append(_Frame(item, frame, key))
        elif isinstance(item, tuple):
            items = list(item)
            active.add(id(items))
            stack.append(_Frame(items, frame, key, (frame.container, key)))
    return top.changed


def truncate_value(
    value: Any,
    max_bytes: int,
    *,
    on_truncate: TruncationCallback | None = None,
    path: tuple[Any, ...] = (),
) -> tuple[Any, bool]:
    """Truncate every string reachable from ``value``.

    Dicts and lists are updated in place; tuples are rebuilt only when one of
    their elements changed. Numbers, booleans and ``None`` pass through.
    The walk uses an explicit stack, so nesting depth is not limited by the
    interpreter's recursion limit, and a container that contains itself is
    visited once.

    Returns:
        ``(value, changed)`` where ``value`` is the object to store back in
        the parent container and ``changed`` is True iff at least one string
        was shortened.
    """
    if isinstance(value, str):
        size = byte_length(value)
        if size <= max_bytes:
            return value, False
        cut = cut_bytes(value, max_bytes)
        if on_truncate is not None:
            on_truncate(path, size, byte_length(cut))
        return cut, True

    if isinstance(value, (dict, list)):
        return value, _walk(value, max_bytes, on_truncate, path)

    if isinstance(value, tuple):
        items = list(value)
        if _walk(items, max_bytes, on_truncate, path):
            return tuple(items), True
        return value, False

    return value, False


def truncate_fields(
    record: dict[str, Any],
    max_bytes: int,
    fields: Iterable[str] | None = None,
    *,
    on_truncate: TruncationCallback | None = None,
) -> bool:
    """Truncate strings under the selected top-level fields of ``record``.

    With no ``fields`` every top-level field is in scope. Named fields that
    are missing from the record are skipped. Fields outside the selection are
    never touched.

    Returns True iff at least one string was shortened.
    """
    if fields:
        keys = [name for name in dict.fromkeys(fields) if name in record]
    else:
        keys = list(record.keys())

    changed_any = False
    for key in keys:
        new, changed = truncate_value(
            record[key], max_bytes, on_truncate=on_truncate, path=(key,)
        )
        if changed:
            record[key] = new
            changed_any = True
    return changed_any


def format_path(parts: Iterable[Any]) -> str:
    """Render path parts as ``a.b[0].c`` for diagnostics."""
    out = ""
    for part in parts:
        if isinstance(part, int) and not isinstance(part, bool):
            out += f"[{part}]"
        elif out:
            out += f".{part}"
        else:
            out = str(part)
    return out


__all__ = [
    "byte_length",
    "cut_bytes",
    "truncate_value",
    "truncate_fields",
    "format_path",
    "TruncationCallback",
]
