"""Pre-compute orchestration.

``PreComputeApp.run`` walks the stage in a fixed order:

1. resolve the task configuration from the session variables
2. check that the output folder exists
3. download, verify, decrypt and save every dataset
4. download every input file

A missing output path or output folder aborts the run with that single
cause. Every other problem is isolated to the dataset or input file it
concerns and collected, in order, into the returned list; an empty list
means success.

Usage:
    from pre_compute.app import PreComputeApp
    from pre_compute.env import OsEnvironment

    causes = PreComputeApp("0xtask", OsEnvironment()).run()
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TypeVar

from pre_compute.args import TaskConfig, read_args
from pre_compute.causes import (
    InputFileDownloadFailed,
    OutputFolderNotFound,
    SavingPlainDatasetFailed,
    StatusCause,
)
from pre_compute.dataset import Dataset
from pre_compute.env import EnvProvider
from pre_compute.logging_config import LogContext
from pre_compute.result import Err, Ok, Result
from pre_compute.utils.hash import sha256_text
from pre_compute.utils.http import download_from_url
from pre_compute.utils.io import ensure_under_root, write_file

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PreComputeApp:
    def __init__(self, chain_task_id: str, env: EnvProvider, *, workers: int = 1) -> None:
        self.chain_task_id = chain_task_id
        self.env = env
        self.workers = max(1, workers)
        self.config = TaskConfig()

    def run(self) -> list[StatusCause]:
        """Run the whole pre-compute stage and return every cause collected."""
        with LogContext(chain_task_id=self.chain_task_id):
            config, causes = read_args(self.env)
            if not config.output_dir:
                return causes
            self.config = config

            folder = self.check_output_folder()
            if folder.is_err:
                return [folder.cause]

            for cause in self._map_in_order(self.process_dataset, self.config.datasets):
                if cause is not None:
                    causes.append(cause)
            causes.extend(self.download_input_files())

            if causes:
                logger.error("Pre-compute finished with %d error(s)", len(causes))
            else:
                logger.info("Pre-compute finished successfully")
            return causes

    def check_output_folder(self) -> Result[None]:
        output_dir = self.config.output_dir
        logger.info(
            "Checking output folder [chainTaskId:%s, path:%s]", self.chain_task_id, output_dir
        )
        if output_dir and Path(output_dir).is_dir():
            return Ok()
        logger.error(
            "Output folder not found [chainTaskId:%s, path:%s]", self.chain_task_id, output_dir
        )
        return Err(OutputFolderNotFound())

    def process_dataset(self, dataset: Dataset) -> StatusCause | None:
        """Download, verify, decrypt and save one dataset; return its cause on failure."""
        with LogContext(dataset=dataset.filename):
            result = (
                dataset.download_encrypted_dataset(self.chain_task_id)
                .and_then(dataset.decrypt_dataset)
                .and_then(lambda plain: self.save_plain_dataset_file(plain, dataset.filename))
            )
        if result.is_err:
            logger.error("Dataset %s failed: %s", dataset.filename, result.cause.message)
            return result.cause
        return None

    def save_plain_dataset_file(self, plain_dataset: bytes, filename: str) -> Result[Path]:
        """Write the decrypted dataset under ``output_dir/filename``."""
        try:
            path = ensure_under_root(Path(self.config.output_dir), filename)
        except ValueError as exc:
            logger.error(
                "Refusing to save plain dataset file [chainTaskId:%s]: %s", self.chain_task_id, exc
            )
            return Err(SavingPlainDatasetFailed())

        logger.info("Saving plain dataset file [chainTaskId:%s, path:%s]", self.chain_task_id, path)
        try:
            write_file(path, plain_dataset)
        except OSError as exc:
            logger.error(
                "Failed to write plain dataset file [chainTaskId:%s, path:%s]: %s",
                self.chain_task_id,
                path,
                exc,
            )
            return Err(SavingPlainDatasetFailed())
        return Ok(path)

    def download_input_file(self, url: str) -> StatusCause | None:
        """Download one input file to ``output_dir/sha256(url)``."""
        logger.info("Downloading input file [chainTaskId:%s, url:%s]", self.chain_task_id, url)
        content = download_from_url(url)
        if content is None:
            return InputFileDownloadFailed(url)
        path = Path(self.config.output_dir) / sha256_text(url)
        try:
            write_file(path, content)
        except OSError as exc:
            logger.error("Failed to write input file [url:%s, path:%s]: %s", url, path, exc)
            return InputFileDownloadFailed(url)
        return None

    def download_input_files(self) -> list[StatusCause]:
        """Download every input file; one failure never stops the others."""
        results = self._map_in_order(self.download_input_file, self.config.input_files)
        return [cause for cause in results if cause is not None]

    def _map_in_order(
        self, fn: Callable[[T], StatusCause | None], items: Sequence[T]
    ) -> list[StatusCause | None]:
        if self.workers <= 1 or len(items) <= 1:
            return [fn(item) for item in items]

        results_by_index: list[StatusCause | None] = [None] * len(items)
        with ThreadPoolExecutor(max_workers=self.workers) as ex:
            # Each task runs in a copy of the caller's context to keep the log context.
            futures = {
                ex.submit(contextvars.copy_context().run, fn, item): idx
                for idx, item in enumerate(items)
            }
            for fut, idx in futures.items():
                results_by_index[idx] = fut.result()
        return results_by_index
