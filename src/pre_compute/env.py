"""Environment variable names and lookup providers for the TEE session.

The pre-compute stage is configured entirely through string variables. The
resolver never touches ``os.environ`` directly: it receives an
``EnvProvider`` so the same code runs against the process environment, an
env file, or a plain dict in tests.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Protocol

IEXEC_TASK_ID = "IEXEC_TASK_ID"
IEXEC_PRE_COMPUTE_OUT = "IEXEC_PRE_COMPUTE_OUT"
IS_DATASET_REQUIRED = "IS_DATASET_REQUIRED"
IEXEC_BULK_SLICE_SIZE = "IEXEC_BULK_SLICE_SIZE"
IEXEC_INPUT_FILES_NUMBER = "IEXEC_INPUT_FILES_NUMBER"
WORKER_HOST_ENV_VAR = "WORKER_HOST_ENV_VAR"
PRE_COMPUTE_AUTHORIZATION = "PRE_COMPUTE_AUTHORIZATION"


def _dataset_var(field: str, index: int) -> str:
    # Index 0 is the primary dataset and uses the unindexed name.
    if index == 0:
        return f"IEXEC_DATASET_{field}"
    return f"IEXEC_DATASET_{index}_{field}"


def dataset_url(index: int) -> str:
    return _dataset_var("URL", index)


def dataset_checksum(index: int) -> str:
    return _dataset_var("CHECKSUM", index)


def dataset_filename(index: int) -> str:
    return _dataset_var("FILENAME", index)


def dataset_key(index: int) -> str:
    return _dataset_var("KEY", index)


def input_file_url(index: int) -> str:
    return f"IEXEC_INPUT_FILE_URL_{index}"


class EnvProvider(Protocol):
    def get(self, name: str) -> str | None: ...


class MappingEnvironment:
    """Look variables up in a fixed mapping."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, name: str) -> str | None:
        value = self._values.get(name)
        return value or None


class OsEnvironment:
    """Look variables up in the process environment at call time."""

    def get(self, name: str) -> str | None:
        return os.environ.get(name) or None


class LayeredEnvironment:
    """Try each provider in order; the first non-empty value wins."""

    def __init__(self, *providers: EnvProvider) -> None:
        self._providers = providers

    def get(self, name: str) -> str | None:
        for provider in self._providers:
            value = provider.get(name)
            if value:
                return value
        return None


def get_env_var(env: EnvProvider, name: str) -> str | None:
    """Return the variable's value, treating empty strings as absent."""
    value = env.get(name)
    return value if value else None
