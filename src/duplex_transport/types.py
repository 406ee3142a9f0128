"""Shared typing helpers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SendResult:
    """Outcome of ``send_data_safe``; ``data`` and ``error`` can both be set."""

    ok: bool
    data: bytes | None = None
    error: Exception | None = None


__all__ = ["SendResult"]
