"""
Configuration for evidence-anchor.

Settings come from environment variables with testnet defaults:

    EVIDENCE_ANCHOR_ALGOD_URL          algod endpoint
    EVIDENCE_ANCHOR_ALGOD_TOKEN        API token (empty for public nodes)
    EVIDENCE_ANCHOR_REQUEST_TIMEOUT    seconds per HTTP round-trip
    EVIDENCE_ANCHOR_MAX_ROUNDS         confirmation polling bound
    EVIDENCE_ANCHOR_VALIDITY_WINDOW    rounds a transaction stays valid
    EVIDENCE_ANCHOR_DIGEST_CHUNK_SIZE  bytes hashed per digest step
    EVIDENCE_ANCHOR_MAX_UPLOAD_BYTES   largest accepted evidence file
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from evidence_anchor.algorand.algod_client import DEFAULT_VALIDITY_WINDOW, AlgodClient
from evidence_anchor.algorand.transport import HttpxTransport
from evidence_anchor.integrity import DEFAULT_CHUNK_SIZE

ENV_PREFIX = "EVIDENCE_ANCHOR_"

DEFAULT_ALGOD_URL = "https://testnet-api.algonode.cloud"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_MAX_ROUNDS = 4
DEFAULT_MAX_UPLOAD_BYTES = 25 * 1024 * 1024


def _get(env: Mapping[str, str], name: str, default: str) -> str:
    return env.get(ENV_PREFIX + name, default)


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got: {raw!r}") from None
    if value < 1:
        raise ValueError(f"{ENV_PREFIX}{name} must be >= 1, got: {value}")
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name, str(default))
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got: {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be > 0, got: {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime settings for one pipeline."""

    algod_url: str = DEFAULT_ALGOD_URL
    algod_token: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_rounds: int = DEFAULT_MAX_ROUNDS
    validity_window: int = DEFAULT_VALIDITY_WINDOW
    digest_chunk_size: int = DEFAULT_CHUNK_SIZE
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Load settings from the environment (or a given mapping).

        Raises:
            ValueError: If a numeric variable is malformed or out of range.
        """
        if env is None:
            env = os.environ
        return cls(
            algod_url=_get(env, "ALGOD_URL", DEFAULT_ALGOD_URL),
            algod_token=_get(env, "ALGOD_TOKEN", ""),
            request_timeout=_positive_float(env, "REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            max_rounds=_positive_int(env, "MAX_ROUNDS", DEFAULT_MAX_ROUNDS),
            validity_window=_positive_int(env, "VALIDITY_WINDOW", DEFAULT_VALIDITY_WINDOW),
            digest_chunk_size=_positive_int(env, "DIGEST_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            max_upload_bytes=_positive_int(env, "MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        )

    def build_client(self) -> AlgodClient:
        """Construct the default algod client for these settings."""
        return AlgodClient(
            self.algod_url,
            self.algod_token,
            HttpxTransport(timeout=self.request_timeout),
            validity_window=self.validity_window,
        )
