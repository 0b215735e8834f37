"""Flatten a content tree into the canonical message layout.

The layout is the protocol-agnostic sequence codecs render from and parse
into: a flat list of Messages in document order, parts untouched.
"""

from __future__ import annotations

from collections.abc import Iterator

from cria.core.types import Message, Scope


def iter_messages(node: Scope) -> Iterator[Message]:
    """Yield every message under ``node`` in pre-order."""
    for child in node.children:
        if isinstance(child, Scope):
            yield from iter_messages(child)
        else:
            yield child


def build_layout(root: Scope) -> list[Message]:
    """Return the flat message layout of a tree."""
    return list(iter_messages(root))

