"""Response envelope returned to callers of ``send_data``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import httpx

from .errors import ResponseDecodeError


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def decode_body(body: bytes) -> Any:
    """Decode a response body as JSON, treating an empty body as invalid."""
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ResponseDecodeError(f"cannot decode HTTP response body: {exc}", context=body) from exc


def canonical_header_name(name: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def join_header_values(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Collapse repeated headers into one ``;``-joined value per canonical name."""
    grouped: dict[str, list[str]] = {}
    for name, value in headers:
        grouped.setdefault(canonical_header_name(name), []).append(value)
    return {name: ";".join(values) for name, values in grouped.items()}


def status_reason(status_code: int) -> str:
    return httpx.codes.get_reason_phrase(status_code)


@dataclass(frozen=True)
class ResponseEnvelope:
    status_code: int
    body: Any = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def from_response(cls, response: httpx.Response, body: bytes) -> "ResponseEnvelope":
        return cls(
            status_code=response.status_code,
            body=decode_body(body),
            metadata=join_header_values(response.headers.multi_items()),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "ResponseEnvelope":
        payload = json.loads(data)
        return cls(
            status_code=int(payload["StatusCode"]),
            body=payload.get("Body"),
            metadata=payload.get("Metadata") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {"StatusCode": self.status_code, "Body": self.body, "Metadata": dict(self.metadata)}

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")


__all__ = [
    "ResponseEnvelope",
    "canonical_header_name",
    "decode_body",
    "join_header_values",
    "status_reason",
]
