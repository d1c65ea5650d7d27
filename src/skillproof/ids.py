"""Identifier helpers."""

from __future__ import annotations

import secrets

import pendulum


def generate_id(prefix: str) -> str:
    """Return ``{prefix}_{epoch_ms}_{random}``, sortable by creation time."""
    return f"{prefix}_{int(pendulum.now('UTC').float_timestamp * 1000)}_{secrets.token_hex(4)}"


def share_token() -> str:
    """URL-safe token used to share a result without exposing its id."""
    return secrets.token_urlsafe(16)
