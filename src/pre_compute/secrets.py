"""Keep dataset keys and the worker authorization token out of log output."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "<REDACTED>"

# Names are compared lowercased with everything but letters and digits removed:
# IEXEC_DATASET_3_KEY -> iexecdataset3key, Authorization -> authorization.
_SECRET_NAME_RE = re.compile(
    r"(precompute)?authorization|iexecdataset\d*key|keymaterial|(x?api|access)?(key|token)"
)

_INLINE_ASSIGNMENT_RE = re.compile(
    r"(?i)(PRE_COMPUTE_AUTHORIZATION|authorization|IEXEC_DATASET(?:_\d+)?_KEY"
    r"|x-api-key|api[-_]?key|access[-_]?token|token)"
    r"(\s*[:=]\s*)"
    r"(\"[^\"]*\"|'[^']*'|Bearer\s+[^,\s]+|[^,\s]+)"
)
_INLINE_PATTERNS = (
    (re.compile(r"(?i)Bearer\s+[^\s,\"']+"), f"Bearer {REDACTED}"),
    (
        re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.S),
        REDACTED,
    ),
    (re.compile(r"eyJ[\w-]{10,}\.[\w.-]{10,}\.[\w.-]{10,}"), REDACTED),
)


def is_sensitive_key(name: str) -> bool:
    normalized = re.sub(r"[^a-z0-9]", "", name.lower())
    return bool(_SECRET_NAME_RE.fullmatch(normalized))


class SecretStr:
    """
    String-like wrapper for values that must never reach a log line.

    Dataset key material and the worker authorization token travel through
    the pipeline wrapped in a ``SecretStr``. ``str()`` and ``repr()`` both
    return ``<REDACTED>``; call :meth:`reveal` only at the point where the
    raw value is consumed (base64 decoding, the ``Authorization`` header).

    ``None`` is normalized to the empty string, so ``SecretStr(None)`` and
    ``SecretStr("")`` reveal the same value.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Any) -> None:
        self._value = "" if value is None else str(value)

    def reveal(self) -> str:
        return self._value

    def __bool__(self) -> bool:
        return bool(self._value)

    def __str__(self) -> str:
        return REDACTED

    __repr__ = __str__

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SecretStr) and self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)


def _mask_assignment(match: re.Match[str]) -> str:
    name, separator, value = match.groups()
    quote = value[0] if value[0] in "'\"" and value.endswith(value[0]) else ""
    return f"{name}{separator}{quote}{REDACTED}{quote}"


def redact_string(text: str) -> str:
    """Mask secret assignments, bearer tokens, PEM private keys and JWTs in ``text``."""
    text = _INLINE_ASSIGNMENT_RE.sub(_mask_assignment, text)
    for pattern, replacement in _INLINE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def redact_structure(value: Any) -> Any:
    """Redact strings in nested log arguments; values under secret names become ``SecretStr``."""
    if isinstance(value, SecretStr):
        return value
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, Mapping):
        return {
            key: SecretStr(item) if is_sensitive_key(str(key)) else redact_structure(item)
            for key, item in value.items()
        }
    if isinstance(value, tuple):
        return tuple(redact_structure(item) for item in value)
    if isinstance(value, list):
        return [redact_structure(item) for item in value]
    return value
