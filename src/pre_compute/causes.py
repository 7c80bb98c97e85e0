"""
pre_compute/causes.py

Status causes: the closed set of failures the pre-compute stage can report.

Each variant is a frozen dataclass that owns only the context needed to act
on it (a dataset identifier, an input file index or URL). The human-readable
text lives in ``render_message`` so the wire payload sent to the worker,
``{"cause": CODE, "message": text}``, stays decoupled from the variants.

Usage:
------
    from pre_compute.causes import DatasetUrlMissing, to_payloads

    causes = [DatasetUrlMissing("dataset.txt")]
    body = to_payloads(causes)
    # [{"cause": "PRE_COMPUTE_DATASET_URL_MISSING",
    #   "message": "Dataset URL related environment variable is missing for dataset dataset.txt"}]
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class StatusCause:
    code: ClassVar[str] = "PRE_COMPUTE_FAILED_UNKNOWN_ISSUE"

    @property
    def message(self) -> str:
        return render_message(self)


# Configuration


@dataclass(frozen=True)
class OutputPathMissing(StatusCause):
    code: ClassVar[str] = "PRE_COMPUTE_OUTPUT_PATH_MISSING"


@dataclass(frozen=True)
class TaskIdMissing(StatusCause):
    code: ClassVar[str] = "PRE_COMPUTE_TASK_ID_MISSING"


@dataclass(frozen=True)
class IsDatasetRequiredMissing(StatusCause):
    code: ClassVar[str] = "PRE_COMPUTE_IS_DATASET_REQUIRED_MISSING"


@dataclass(frozen=True)
class FailedUnknownIssue(StatusCause):
    code: ClassVar[str] = "PRE_COMPUTE_FAILED_UNKNOWN_ISSUE"


@dataclass(frozen=True)
class DatasetFilenameMissing(StatusCause):
    dataset: str
    code: ClassVar[str] = "PRE_COMPUTE_DATASET_FILENAME_MISSING"


@dataclass(frozen=True)
class DatasetUrlMissing(StatusCause):
    dataset: str
    code: ClassVar[str] = "PRE_COMPUTE_DATASET_URL_MISSING"


@dataclass(frozen=True)
class DatasetChecksumMissing(StatusCause):
    dataset: str
    code: ClassVar[str] = "PRE_COMPUTE_DATASET_CHECKSUM_MISSING"


@dataclass(frozen=True)
class DatasetKeyMissing(StatusCause):
    dataset: str
    code: ClassVar[str] = "PRE_COMPUTE_DATASET_KEY_MISSING"


@dataclass(frozen=True)
class InputFilesNumberMissing(StatusCause):
    code: ClassVar[str] = "PRE_COMPUTE_INPUT_FILES_NUMBER_MISSING"


@dataclass(frozen=True)
class AtLeastOneInputFileUrlMissing(StatusCause):
    index: int
    code: ClassVar[str] = "PRE_COMPUTE_AT_LEAST_ONE_INPUT_FILE_URL_MISSING"


# Processing


@dataclass(frozen=True)
class OutputFolderNotFound(StatusCause):
    code: ClassVar[str] = "PRE_COMPUTE_OUTPUT_FOLDER_NOT_FOUND"


@dataclass(frozen=True)
class DatasetDownloadFailed(StatusCause):
    dataset: str
    code: ClassVar[str] = "PRE_COMPUTE_DATASET_DOWNLOAD_FAILED"


@dataclass(frozen=True)
class InvalidDatasetChecksum(StatusCause):
    dataset: str
    code: ClassVar[str] = "PRE_COMPUTE_INVALID_DATASET_CHECKSUM"


@dataclass(frozen=True)
class DatasetDecryptionFailed(StatusCause):
    dataset: str
    code: ClassVar[str] = "PRE_COMPUTE_DATASET_DECRYPTION_FAILED"


@dataclass(frozen=True)
class SavingPlainDatasetFailed(StatusCause):
    code: ClassVar[str] = "PRE_COMPUTE_SAVING_PLAIN_DATASET_FAILED"


@dataclass(frozen=True)
class InputFileDownloadFailed(StatusCause):
    url: str
    code: ClassVar[str] = "PRE_COMPUTE_INPUT_FILE_DOWNLOAD_FAILED"


_MESSAGES: dict[type[StatusCause], str] = {
    OutputPathMissing: "Output path related environment variable is missing",
    TaskIdMissing: "Task ID related environment variable is missing",
    IsDatasetRequiredMissing: "IS_DATASET_REQUIRED environment variable is missing",
    FailedUnknownIssue: "Unexpected error occurred",
    DatasetFilenameMissing: (
        "Dataset filename related environment variable is missing for dataset {dataset}"
    ),
    DatasetUrlMissing: "Dataset URL related environment variable is missing for dataset {dataset}",
    DatasetChecksumMissing: (
        "Dataset checksum related environment variable is missing for dataset {dataset}"
    ),
    DatasetKeyMissing: "Dataset key related environment variable is missing for dataset {dataset}",
    InputFilesNumberMissing: "Input files number related environment variable is missing",
    AtLeastOneInputFileUrlMissing: "input file URL {index} is missing",
    OutputFolderNotFound: "Output folder not found",
    DatasetDownloadFailed: "Failed to download encrypted dataset file for dataset {dataset}",
    InvalidDatasetChecksum: "Invalid dataset checksum for dataset {dataset}",
    DatasetDecryptionFailed: "Failed to decrypt dataset {dataset}",
    SavingPlainDatasetFailed: "Failed to write plain dataset file",
    InputFileDownloadFailed: "Input files download failed",
}


def render_message(cause: StatusCause) -> str:
    """Render the human-readable message reported for a cause."""
    template = _MESSAGES.get(type(cause), _MESSAGES[FailedUnknownIssue])
    return template.format(**dataclasses.asdict(cause))


def to_payload(cause: StatusCause) -> dict[str, str]:
    return {"cause": cause.code, "message": render_message(cause)}


def to_payloads(causes: Iterable[StatusCause]) -> list[dict[str, str]]:
    return [to_payload(cause) for cause in causes]


__all__ = [
    "StatusCause",
    "OutputPathMissing",
    "TaskIdMissing",
    "IsDatasetRequiredMissing",
    "FailedUnknownIssue",
    "DatasetFilenameMissing",
    "DatasetUrlMissing",
    "DatasetChecksumMissing",
    "DatasetKeyMissing",
    "InputFilesNumberMissing",
    "AtLeastOneInputFileUrlMissing",
    "OutputFolderNotFound",
    "DatasetDownloadFailed",
    "InvalidDatasetChecksum",
    "DatasetDecryptionFailed",
    "SavingPlainDatasetFailed",
    "InputFileDownloadFailed",
    "render_message",
    "to_payload",
    "to_payloads",
]
