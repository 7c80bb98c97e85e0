"""Resolve the pre-compute task configuration from TEE session variables.

``read_args`` never stops at the first problem (except a missing output
directory, which nothing else can work without). Every missing or malformed
variable becomes a status cause and resolution carries on, so the
orchestrator can still process every dataset and input file that is fully
specified.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from pre_compute import env as env_vars
from pre_compute.causes import (
    AtLeastOneInputFileUrlMissing,
    DatasetChecksumMissing,
    DatasetFilenameMissing,
    DatasetKeyMissing,
    DatasetUrlMissing,
    FailedUnknownIssue,
    InputFilesNumberMissing,
    IsDatasetRequiredMissing,
    OutputPathMissing,
    StatusCause,
)
from pre_compute.dataset import Dataset
from pre_compute.env import EnvProvider, get_env_var
from pre_compute.result import Err, Ok, Result
from pre_compute.secrets import SecretStr

logger = logging.getLogger(__name__)

_UNSIGNED_INT_RE = re.compile(r"\+?[0-9]+")
# Counts are 64-bit unsigned; anything larger is a parse error.
UNSIGNED_INT_MAX = 2**64 - 1


@dataclass(frozen=True)
class TaskConfig:
    output_dir: str = ""
    is_dataset_required: bool = False
    input_files: tuple[str, ...] = ()
    bulk_slice_size: int = 0
    datasets: tuple[Dataset, ...] = ()


def parse_bool(value: str) -> bool | None:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def parse_unsigned_int(value: str) -> int | None:
    if not _UNSIGNED_INT_RE.fullmatch(value):
        return None
    digits = value.lstrip("+").lstrip("0") or "0"
    # Checked before int() so huge inputs never reach the digit-count limit.
    if len(digits) > len(str(UNSIGNED_INT_MAX)):
        return None
    parsed = int(digits)
    if parsed > UNSIGNED_INT_MAX:
        return None
    return parsed


def _read_unsigned(
    env: EnvProvider, name: str, cause: StatusCause, causes: list[StatusCause]
) -> int:
    raw = get_env_var(env, name)
    if raw is None:
        logger.error("Failed to read %s: %s", name, cause.message)
        causes.append(cause)
        return 0
    value = parse_unsigned_int(raw)
    if value is None:
        logger.error("Invalid numeric format for %s: %s", name, raw)
        causes.append(cause)
        return 0
    logger.info("%s: %d", name, value)
    return value


def _read_is_dataset_required(env: EnvProvider, causes: list[StatusCause]) -> bool:
    raw = get_env_var(env, env_vars.IS_DATASET_REQUIRED)
    if raw is None:
        logger.error("Failed to read %s", env_vars.IS_DATASET_REQUIRED)
        causes.append(IsDatasetRequiredMissing())
        return False
    value = parse_bool(raw)
    if value is None:
        logger.error("Invalid boolean format for %s: %s", env_vars.IS_DATASET_REQUIRED, raw)
        causes.append(IsDatasetRequiredMissing())
        return False
    logger.info("Dataset required: %s", value)
    return value


def read_dataset(env: EnvProvider, index: int) -> Result[Dataset]:
    """Read the four variables of dataset ``index``.

    Fields are read in a fixed order (filename, URL, checksum, key) and the
    first missing one ends the read with a single cause. A missing filename is
    reported as ``dataset_<index>``; later fields use the filename read.
    """
    filename = get_env_var(env, env_vars.dataset_filename(index))
    if filename is None:
        return Err(DatasetFilenameMissing(f"dataset_{index}"))

    url = get_env_var(env, env_vars.dataset_url(index))
    if url is None:
        return Err(DatasetUrlMissing(filename))

    checksum = get_env_var(env, env_vars.dataset_checksum(index))
    if checksum is None:
        return Err(DatasetChecksumMissing(filename))

    key = get_env_var(env, env_vars.dataset_key(index))
    if key is None:
        return Err(DatasetKeyMissing(filename))

    return Ok(Dataset(url=url, checksum=checksum, filename=filename, key=SecretStr(key)))


def read_input_file_urls(
    env: EnvProvider, count: int, causes: list[StatusCause]
) -> tuple[str, ...]:
    urls: list[str] = []
    for index in range(1, count + 1):
        url = get_env_var(env, env_vars.input_file_url(index))
        if url is None:
            logger.error("Failed to read input file %d URL", index)
            causes.append(AtLeastOneInputFileUrlMissing(index))
            continue
        logger.info("Input file %d URL: %s", index, url)
        urls.append(url)
    return tuple(urls)


def read_args(env: EnvProvider) -> tuple[TaskConfig, list[StatusCause]]:
    """Build the task configuration and the ordered list of every problem found.

    Returns ``(TaskConfig(), [OutputPathMissing()])`` straight away when the
    output directory variable is missing; otherwise the returned config holds
    every fully specified dataset and input file URL.
    """
    logger.info("Starting to read pre-compute arguments from environment variables")
    causes: list[StatusCause] = []

    output_dir = get_env_var(env, env_vars.IEXEC_PRE_COMPUTE_OUT)
    if output_dir is None:
        logger.error("Failed to read output directory %s", env_vars.IEXEC_PRE_COMPUTE_OUT)
        return TaskConfig(), [OutputPathMissing()]
    logger.info("Successfully read output directory: %s", output_dir)

    is_dataset_required = _read_is_dataset_required(env, causes)
    # TODO: give an unparseable bulk slice size its own cause instead of FailedUnknownIssue.
    bulk_slice_size = _read_unsigned(
        env, env_vars.IEXEC_BULK_SLICE_SIZE, FailedUnknownIssue(), causes
    )

    start_index = 0 if is_dataset_required else 1
    logger.info(
        "Reading datasets from index %d to %d (is_dataset_required: %s)",
        start_index,
        bulk_slice_size,
        is_dataset_required,
    )
    datasets: list[Dataset] = []
    for index in range(start_index, bulk_slice_size + 1):
        result = read_dataset(env, index)
        if result.is_err:
            logger.error("Failed to read dataset %d: %s", index, result.cause.message)
            causes.append(result.cause)
            continue
        logger.info("Successfully loaded dataset %d (%s)", index, result.value.filename)
        datasets.append(result.value)
    logger.info("Successfully loaded %d datasets", len(datasets))

    input_files_nb = _read_unsigned(
        env, env_vars.IEXEC_INPUT_FILES_NUMBER, InputFilesNumberMissing(), causes
    )
    logger.info("Reading %d input file URLs", input_files_nb)
    input_files = read_input_file_urls(env, input_files_nb, causes)
    logger.info("Successfully loaded %d input files", len(input_files))

    if causes:
        logger.error("Encountered %d error(s) while reading pre-compute arguments", len(causes))
    else:
        logger.info("Successfully read all pre-compute arguments without errors")

    config = TaskConfig(
        output_dir=output_dir,
        is_dataset_required=is_dataset_required,
        input_files=input_files,
        bulk_slice_size=bulk_slice_size,
        datasets=tuple(datasets),
    )
    return config, causes
