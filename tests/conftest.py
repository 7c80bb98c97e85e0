"""
Shared pytest fixtures for pre-compute tests.

Provides common fakes and fixtures for:
- Session environment variables
- HTTP responses (no network access)
- Encrypted dataset payloads
"""

from __future__ import annotations

import base64
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.is_dir():
    sys.path.insert(0, str(SRC_ROOT))

from cryptography.hazmat.primitives import padding  # noqa: E402
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes  # noqa: E402

from pre_compute.utils import http as http_utils  # noqa: E402
from pre_compute.utils.hash import sha256_bytes  # noqa: E402

CHAIN_TASK_ID = "0x123456789abcdef"
PLAIN_DATA = b"Some very useful data."


# =============================================================================
# Encryption helpers
# =============================================================================


def encrypt_dataset(plain: bytes, key: bytes, iv: bytes | None = None) -> bytes:
    """Encrypt ``plain`` the way dataset owners do: IV || AES-256-CBC(PKCS#7(plain))."""
    iv = iv if iv is not None else os.urandom(16)
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plain) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


@dataclass
class EncryptedDataset:
    plain: bytes
    key: bytes
    payload: bytes

    @property
    def key_b64(self) -> str:
        return base64.b64encode(self.key).decode("ascii")

    @property
    def checksum(self) -> str:
        return sha256_bytes(self.payload)


@pytest.fixture
def make_encrypted_dataset() -> Callable[..., EncryptedDataset]:
    def _make(plain: bytes = PLAIN_DATA, key: bytes | None = None) -> EncryptedDataset:
        key = key if key is not None else os.urandom(32)
        return EncryptedDataset(plain=plain, key=key, payload=encrypt_dataset(plain, key))

    return _make


@pytest.fixture
def encrypted_dataset(make_encrypted_dataset: Callable[..., EncryptedDataset]) -> EncryptedDataset:
    return make_encrypted_dataset()


# =============================================================================
# HTTP response fixtures
# =============================================================================


@pytest.fixture
def fake_http_response() -> Any:
    """Create a fake HTTP response with configurable attributes."""

    def _create(
        content: bytes = b"test content",
        status_code: int = 200,
        url: str = "https://example.com/test",
    ) -> MagicMock:
        response = MagicMock()
        response.content = content
        response.status_code = status_code
        response.url = url
        response.text = content.decode("utf-8", errors="replace")
        response.ok = 200 <= status_code < 400
        response.raise_for_status = MagicMock()
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(
                f"HTTP {status_code}", response=response
            )
        return response

    return _create


@dataclass
class FakeWeb:
    """URL -> body (or HTTP status) table served to ``requests.get``."""

    routes: dict[str, bytes | int] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)


@pytest.fixture
def fake_web(monkeypatch: pytest.MonkeyPatch, fake_http_response: Any) -> FakeWeb:
    """Serve HTTP GETs from an in-memory table; unknown URLs fail to connect."""
    web = FakeWeb()

    def fake_get(url: str, **kwargs: Any) -> MagicMock:
        web.calls.append(url)
        if url not in web.routes:
            raise requests.exceptions.ConnectionError(f"no route to {url}")
        body = web.routes[url]
        if isinstance(body, int):
            return fake_http_response(content=b"", status_code=body, url=url)
        return fake_http_response(content=body, url=url)

    monkeypatch.setattr(http_utils.requests, "get", fake_get)
    return web


# =============================================================================
# Environment fixtures
# =============================================================================


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "iexec_in"
    out.mkdir()
    return out
