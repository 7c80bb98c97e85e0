"""
pre_compute/result.py

Result type for the per-item stages of the pre-compute pipeline.

Error Handling Convention:
--------------------------
1. **Exceptions** are raised for programmer/config errors:
   - ConfigValidationError / EnvFileParseError: unreadable or invalid env file
   - WorkerApiError: the worker rejected or never received the exit causes
   - ValueError: invalid arguments to functions

2. **Result values** (this module) carry recoverable per-item runtime failures:
   - dataset download, checksum, decryption and save failures
   - input file download failures
   A failed Result holds exactly one ``StatusCause``.

3. The orchestrator folds Results into the ordered list of causes that is
   reported to the worker.

Usage:
------
    from pre_compute.result import Ok, Err

    result = dataset.download_encrypted_dataset(task_id).and_then(dataset.decrypt_dataset)
    if result.is_err:
        causes.append(result.cause)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pre_compute.causes import StatusCause

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Either a success value (``status="ok"``) or a single status cause
    (``status="error"``).
    """

    status: str
    value: T | None = None
    cause: StatusCause | None = None

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_err(self) -> bool:
        return self.status == "error"

    def and_then(self, fn: Callable[[T], Result[U]]) -> Result[U]:
        """Feed the success value into the next stage; errors pass through untouched."""
        if self.is_err:
            return self  # type: ignore[return-value]
        return fn(self.value)  # type: ignore[arg-type]


def Ok(value: T = None) -> Result[T]:  # noqa: N802 - intentional PascalCase
    """Create a successful result."""
    return Result(status="ok", value=value)


def Err(cause: StatusCause) -> Result[Any]:  # noqa: N802
    """Create a failed result."""
    return Result(status="error", cause=cause)


FetchResult = Result[bytes]
