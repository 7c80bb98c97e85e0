"""Client for reporting pre-compute exit causes to the worker."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import requests

from pre_compute.causes import StatusCause, to_payloads
from pre_compute.env import WORKER_HOST_ENV_VAR, EnvProvider, get_env_var
from pre_compute.exceptions import WorkerApiError
from pre_compute.secrets import SecretStr
from pre_compute.utils.http import DEFAULT_TIMEOUT, build_user_agent

logger = logging.getLogger(__name__)

DEFAULT_WORKER_HOST = "worker:13100"


class WorkerApiClient:
    """Thin wrapper around a ``requests.Session`` that knows the worker's routes."""

    def __init__(self, base_url: str, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    @classmethod
    def from_env(
        cls, env: EnvProvider, session: requests.Session | None = None
    ) -> WorkerApiClient:
        """Build a client for ``http://$WORKER_HOST_ENV_VAR`` (default ``worker:13100``)."""
        worker_host = get_env_var(env, WORKER_HOST_ENV_VAR) or DEFAULT_WORKER_HOST
        return cls(f"http://{worker_host}", session=session)

    def send_exit_causes_for_pre_compute_stage(
        self,
        authorization: SecretStr,
        chain_task_id: str,
        exit_causes: Sequence[StatusCause],
    ) -> None:
        """POST the ordered ``{cause, message}`` list to ``/compute/pre/<task>/exit``.

        Raises:
            WorkerApiError: the request could not be sent or the worker
                answered with a non-2xx status.
        """
        url = f"{self.base_url}/compute/pre/{chain_task_id}/exit"
        headers = {
            "Authorization": authorization.reveal(),
            "User-Agent": build_user_agent(),
        }
        try:
            response = self.session.post(
                url, json=to_payloads(exit_causes), headers=headers, timeout=DEFAULT_TIMEOUT
            )
        except requests.RequestException as exc:
            logger.error("HTTP request failed when sending exit causes to %s: %s", url, exc)
            raise WorkerApiError(f"Failed to send exit causes: {exc}", url=url) from exc

        if not 200 <= response.status_code < 300:
            logger.error(
                "Failed to send exit causes [status:%s, body:%s]",
                response.status_code,
                response.text,
            )
            raise WorkerApiError(
                f"Worker rejected exit causes with status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        logger.info(
            "Exit causes reported [chainTaskId:%s, count:%d]", chain_task_id, len(exit_causes)
        )
