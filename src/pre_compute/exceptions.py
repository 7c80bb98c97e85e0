from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class PreComputeError(Exception):
    message: str
    code: str = "pre_compute_error"
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.context = dict(context or {})

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "error_code": self.code,
            "error_message": self.message,
            "error_context": self.context,
        }


class ConfigValidationError(PreComputeError):
    code = "config_validation_error"


class EnvFileParseError(PreComputeError):
    code = "env_file_parse_error"


class WorkerApiError(PreComputeError):
    code = "worker_api_error"

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        context: dict[str, Any] = {"url": url}
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, context=context)
