"""Command-line entrypoint for the pre-compute stage.

Exit codes:
    0  success
    1  failure, exit causes reported to the worker
    2  failure, exit causes could not be reported
    3  initialization failure (no task id or unreadable env file)
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from enum import IntEnum
from pathlib import Path

from pre_compute import env as env_vars
from pre_compute.__version__ import __version__ as VERSION
from pre_compute.app import PreComputeApp
from pre_compute.causes import TaskIdMissing
from pre_compute.env import EnvProvider, LayeredEnvironment, OsEnvironment, get_env_var
from pre_compute.env_file import load_env_file
from pre_compute.exceptions import PreComputeError, WorkerApiError
from pre_compute.logging_config import add_logging_args, configure_logging
from pre_compute.secrets import SecretStr
from pre_compute.worker_api import WorkerApiClient

logger = logging.getLogger(__name__)

AppFactory = Callable[[str, EnvProvider], PreComputeApp]


class ExitMode(IntEnum):
    SUCCESS = 0
    REPORTED_FAILURE = 1
    UNREPORTED_FAILURE = 2
    INITIALIZATION_FAILURE = 3


def run_pre_compute(
    env: EnvProvider,
    client: WorkerApiClient,
    *,
    authorization: SecretStr | None = None,
    app_factory: AppFactory = PreComputeApp,
) -> ExitMode:
    """Run the stage and report its exit causes to the worker when it fails."""
    chain_task_id = get_env_var(env, env_vars.IEXEC_TASK_ID)
    if chain_task_id is None:
        logger.error(
            "TEE pre-compute cannot go further without taskID context: %s",
            TaskIdMissing().message,
        )
        return ExitMode.INITIALIZATION_FAILURE

    exit_causes = app_factory(chain_task_id, env).run()
    if not exit_causes:
        logger.info("TEE pre-compute completed [chainTaskId:%s]", chain_task_id)
        return ExitMode.SUCCESS

    logger.error(
        "TEE pre-compute failed [chainTaskId:%s, causes:%s]",
        chain_task_id,
        [cause.code for cause in exit_causes],
    )
    if not authorization:
        logger.error(
            "No authorization available to report exit causes [chainTaskId:%s]", chain_task_id
        )
        return ExitMode.UNREPORTED_FAILURE
    try:
        client.send_exit_causes_for_pre_compute_stage(authorization, chain_task_id, exit_causes)
    except WorkerApiError as exc:
        logger.error(
            "Failed to report exit causes [chainTaskId:%s]: %s", chain_task_id, exc.message
        )
        return ExitMode.UNREPORTED_FAILURE
    return ExitMode.REPORTED_FAILURE


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="pre-compute",
        description=f"TEE pre-compute stage v{VERSION}",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    ap.add_argument(
        "--env-file",
        default=None,
        help="YAML file of session variables layered over the process environment",
    )
    ap.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Datasets and input files processed in parallel (default: 1)",
    )
    ap.add_argument(
        "--authorization",
        default=None,
        help=f"Worker API authorization token (default: ${env_vars.PRE_COMPUTE_AUTHORIZATION})",
    )
    ap.add_argument(
        "--worker-host",
        default=None,
        help=f"Worker API host:port (default: ${env_vars.WORKER_HOST_ENV_VAR} or worker:13100)",
    )
    add_logging_args(ap)
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)

    env: EnvProvider = OsEnvironment()
    if args.env_file:
        try:
            env = LayeredEnvironment(load_env_file(Path(args.env_file).expanduser()), env)
        except OSError as exc:
            logger.error("Cannot read env file %s: %s", args.env_file, exc)
            return int(ExitMode.INITIALIZATION_FAILURE)
        except PreComputeError as exc:
            logger.error(
                "Invalid env file %s: %s", args.env_file, exc.message, extra=exc.as_log_fields()
            )
            return int(ExitMode.INITIALIZATION_FAILURE)

    if args.worker_host:
        client = WorkerApiClient(f"http://{args.worker_host}")
    else:
        client = WorkerApiClient.from_env(env)
    token = args.authorization or get_env_var(env, env_vars.PRE_COMPUTE_AUTHORIZATION)
    authorization = SecretStr(token) if token else None

    workers = args.workers

    def app_factory(chain_task_id: str, app_env: EnvProvider) -> PreComputeApp:
        return PreComputeApp(chain_task_id, app_env, workers=workers)

    mode = run_pre_compute(env, client, authorization=authorization, app_factory=app_factory)
    return int(mode)


if __name__ == "__main__":
    raise SystemExit(main())
