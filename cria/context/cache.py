"""Cache and pin support.

Two kinds of caching meet here:

- Provider-side prompt caching: a Pin on a scope asks for a deterministic
  cache key derived from protocol, model, pin and TTL settings. Any input
  change yields a different key so stale provider caches are never reused.
- Summary caching: summaries are stored in a caller-supplied KV store under
  the scope id, together with a hash of the content they summarize. A stored
  summary is reused only while that hash still matches and the entry is not
  older than the strategy's max age.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from cria.context.accountant import serialize_payload
from cria.core.interfaces import KVStore, StoreEntry, maybe_await
from cria.core.types import (
    Message,
    Pin,
    Reasoning,
    Scope,
    Text,
    ToolCall,
    ToolResult,
    WireProtocol,
)

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "cria"

# Anthropic accepts "5m" (default) or "1h" cache lifetimes.
ANTHROPIC_LONG_TTL_SECONDS = 3600


# === Pin cache keys ===


def derive_cache_key(
    protocol: WireProtocol | str,
    model: str,
    scope_key: str,
    ttl_seconds: int | None,
    pin_id: str,
    version: str,
) -> str:
    """Derive a deterministic provider cache key.

    Args:
        protocol: Wire protocol the payload is rendered for.
        model: Model identifier.
        scope_key: Caller-defined partition.
        ttl_seconds: Requested cache lifetime.
        pin_id: Pin identifier.
        version: Pin content version.

    Returns:
        A key of the form ``cria_<sha256 hex>``.
    """
    protocol_value = protocol.value if isinstance(protocol, WireProtocol) else str(protocol)
    seed = json.dumps(
        {
            "model": model,
            "pin": pin_id,
            "protocol": protocol_value,
            "scope": scope_key,
            "ttl": ttl_seconds,
            "version": str(version),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}_{digest}"


@dataclass(frozen=True)
class PinnedScope:
    """A pin found in a tree, with the id of the scope carrying it."""

    pin: Pin
    scope_id: str | None


def find_pin(root: Scope) -> PinnedScope | None:
    """Return the tree's pin, if any."""
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node.strategy, Pin):
            return PinnedScope(pin=node.strategy, scope_id=node.id)
        stack.extend(
            child for child in reversed(node.children) if isinstance(child, Scope)
        )
    return None


def pin_cache_key(pinned: PinnedScope, protocol: WireProtocol, model: str) -> str:
    pin = pinned.pin
    return derive_cache_key(
        protocol=protocol,
        model=model,
        scope_key=pin.scope_key,
        ttl_seconds=pin.ttl_seconds,
        pin_id=pin.id,
        version=pin.version,
    )


def anthropic_cache_control(ttl_seconds: int | None) -> dict[str, str]:
    """Build an Anthropic cache_control block for a pin's TTL."""
    control = {"type": "ephemeral"}
    if ttl_seconds is not None and ttl_seconds >= ANTHROPIC_LONG_TTL_SECONDS:
        control["ttl"] = "1h"
    return control


def apply_cache_hints(
    payload: Any, protocol: WireProtocol, pin: Pin
) -> Any:
    """Mark a rendered payload for provider-side caching.

    For Anthropic the system prompt becomes a text block carrying
    cache_control. OpenAI protocols take the key as a request option
    instead, so their payloads are returned unchanged.
    """
    if protocol != WireProtocol.ANTHROPIC:
        return payload
    system = payload.get("system")
    if not isinstance(system, str) or not system:
        return payload
    marked = dict(payload)
    marked["system"] = [
        {
            "type": "text",
            "text": system,
            "cache_control": anthropic_cache_control(pin.ttl_seconds),
        }
    ]
    return marked


# === Summary cache ===


def _part_fingerprint(part: Any) -> list[Any]:
    match part:
        case Text():
            return ["text", part.text]
        case ToolCall():
            return ["call", part.tool_call_id, part.tool_name, serialize_payload(part.input)]
        case ToolResult():
            return ["result", part.tool_call_id, part.tool_name, serialize_payload(part.output)]
        case Reasoning():
            return ["reasoning", part.text]
        case _:
            raise TypeError(f"Unknown message part {type(part).__name__}")


def source_hash(messages: Sequence[Message]) -> str:
    """Hash the content a summary was generated from."""
    seed = [
        [msg.role.value, [_part_fingerprint(p) for p in msg.children]] for msg in messages
    ]
    encoded = json.dumps(seed, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CachedSummary:
    """Result of a summary cache lookup.

    Attributes:
        content: Stored summary text, None on a miss.
        fresh: True if the entry can be reused as-is.
    """

    content: str | None
    fresh: bool


async def load_summary(
    store: KVStore,
    scope_id: str,
    digest: str,
    max_age_seconds: float | None = None,
) -> CachedSummary:
    """Look up a stored summary and decide whether it is still valid.

    A stale entry still returns its content so the summarizer can build
    on the previous summary.
    """
    entry = await maybe_await(store.get(scope_id))
    if entry is None:
        logger.debug("Summary cache miss for %r", scope_id)
        return CachedSummary(content=None, fresh=False)

    value = entry.value if isinstance(entry, StoreEntry) else entry
    if not isinstance(value, dict) or not isinstance(value.get("content"), str):
        logger.debug("Ignoring unrecognized summary cache entry for %r", scope_id)
        return CachedSummary(content=None, fresh=False)

    fresh = value.get("source_hash") == digest
    if fresh and max_age_seconds is not None and isinstance(entry, StoreEntry):
        fresh = (time.time() - entry.updated_at) <= max_age_seconds

    logger.debug("Summary cache %s for %r", "hit" if fresh else "stale", scope_id)
    return CachedSummary(content=value["content"], fresh=fresh)


async def store_summary(store: KVStore, scope_id: str, content: str, digest: str) -> None:
    """Write a summary and the hash of its source content."""
    await maybe_await(
        store.set(
            scope_id,
            {"content": content, "source_hash": digest},
            {"kind": "summary"},
        )
    )
