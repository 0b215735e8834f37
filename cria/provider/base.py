"""Base class for wire protocol codecs.

A codec is a pair of pure functions between the canonical layout (a flat
``list[Message]``) and one provider's request payload:

- ``render(messages)`` produces the wire payload.
- ``parse(payload)`` reads a wire payload back into the layout.

``render(parse(x))`` reproduces ``x`` for any valid payload, up to the
normalizations each codec documents (e.g. regenerated reasoning ids).
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from cria.core.errors import CodecError
from cria.core.types import Message, Role, WireProtocol

logger = logging.getLogger(__name__)


def dump_arguments(value: Any) -> str:
    """Serialize tool input/output for protocols that carry JSON strings."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


class MessageCodec(ABC):
    """Converts between the canonical layout and one wire protocol.

    Subclasses implement:
    - render(): layout -> wire payload
    - parse(): wire payload -> layout
    """

    protocol: WireProtocol

    @abstractmethod
    def render(self, messages: Sequence[Message]) -> Any:
        """Encode a layout as this protocol's payload."""
        ...

    @abstractmethod
    def parse(self, payload: Any) -> list[Message]:
        """Decode this protocol's payload into a layout.

        Raises:
            CodecError: If the payload is malformed. The error carries the
                offending fragment.
        """
        ...

    # === Shared parse helpers ===

    @staticmethod
    def _require_list(payload: Any, what: str) -> list[Any]:
        if not isinstance(payload, list):
            raise CodecError(f"Expected a list of {what}", payload)
        return payload

    @staticmethod
    def _require_dict(item: Any, what: str) -> dict[str, Any]:
        if not isinstance(item, dict):
            raise CodecError(f"Expected {what} to be an object", item)
        return item

    @staticmethod
    def _require_str(item: dict[str, Any], key: str) -> str:
        value = item.get(key)
        if not isinstance(value, str):
            raise CodecError(f"Missing or non-string {key!r}", item)
        return value

    @staticmethod
    def _parse_role(value: Any, item: Any) -> Role:
        try:
            return Role(value)
        except ValueError as e:
            raise CodecError(f"Unknown role {value!r}", item) from e
