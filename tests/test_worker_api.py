from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from pre_compute import env as env_vars
from pre_compute.causes import (
    AtLeastOneInputFileUrlMissing,
    DatasetDownloadFailed,
    OutputFolderNotFound,
)
from pre_compute.env import MappingEnvironment
from pre_compute.exceptions import WorkerApiError
from pre_compute.secrets import SecretStr
from pre_compute.worker_api import DEFAULT_WORKER_HOST, WorkerApiClient

from conftest import CHAIN_TASK_ID


def make_session(status_code: int = 200, text: str = "") -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.post.return_value = MagicMock(status_code=status_code, text=text)
    return session


def test_from_env_uses_default_worker_host() -> None:
    client = WorkerApiClient.from_env(MappingEnvironment(), session=make_session())
    assert client.base_url == f"http://{DEFAULT_WORKER_HOST}"
    assert DEFAULT_WORKER_HOST == "worker:13100"


def test_from_env_uses_configured_worker_host() -> None:
    env = MappingEnvironment({env_vars.WORKER_HOST_ENV_VAR: "custom-worker:8080"})
    client = WorkerApiClient.from_env(env, session=make_session())
    assert client.base_url == "http://custom-worker:8080"


def test_from_env_treats_empty_worker_host_as_default() -> None:
    env = MappingEnvironment({env_vars.WORKER_HOST_ENV_VAR: ""})
    client = WorkerApiClient.from_env(env, session=make_session())
    assert client.base_url == f"http://{DEFAULT_WORKER_HOST}"


def test_send_exit_causes_posts_ordered_payload() -> None:
    session = make_session()
    client = WorkerApiClient("http://worker:13100/", session=session)
    causes = [
        AtLeastOneInputFileUrlMissing(2),
        DatasetDownloadFailed("data.bin"),
        AtLeastOneInputFileUrlMissing(2),
    ]

    client.send_exit_causes_for_pre_compute_stage(SecretStr("signed-token"), CHAIN_TASK_ID, causes)

    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == f"http://worker:13100/compute/pre/{CHAIN_TASK_ID}/exit"
    assert kwargs["headers"]["Authorization"] == "signed-token"
    assert kwargs["headers"]["User-Agent"].startswith("tee-pre-compute/")
    assert kwargs["json"] == [
        {
            "cause": "PRE_COMPUTE_AT_LEAST_ONE_INPUT_FILE_URL_MISSING",
            "message": "input file URL 2 is missing",
        },
        {
            "cause": "PRE_COMPUTE_DATASET_DOWNLOAD_FAILED",
            "message": "Failed to download encrypted dataset file for dataset data.bin",
        },
        {
            "cause": "PRE_COMPUTE_AT_LEAST_ONE_INPUT_FILE_URL_MISSING",
            "message": "input file URL 2 is missing",
        },
    ]
    assert kwargs["timeout"]


@pytest.mark.parametrize("status_code", [400, 401, 404, 500, 503])
def test_send_exit_causes_raises_on_error_status(status_code: int) -> None:
    client = WorkerApiClient("http://worker:13100", session=make_session(status_code, "nope"))

    with pytest.raises(WorkerApiError) as excinfo:
        client.send_exit_causes_for_pre_compute_stage(
            SecretStr("token"), CHAIN_TASK_ID, [OutputFolderNotFound()]
        )

    assert excinfo.value.code == "worker_api_error"
    assert excinfo.value.context["status_code"] == status_code
    assert excinfo.value.context["url"].endswith(f"/compute/pre/{CHAIN_TASK_ID}/exit")


def test_send_exit_causes_raises_when_worker_unreachable() -> None:
    session = make_session()
    session.post.side_effect = requests.exceptions.ConnectionError("connection refused")
    client = WorkerApiClient("http://worker:13100", session=session)

    with pytest.raises(WorkerApiError) as excinfo:
        client.send_exit_causes_for_pre_compute_stage(
            SecretStr("token"), CHAIN_TASK_ID, [OutputFolderNotFound()]
        )

    assert "status_code" not in excinfo.value.context
    assert isinstance(excinfo.value.__cause__, requests.exceptions.ConnectionError)


def test_send_exit_causes_accepts_any_2xx() -> None:
    client = WorkerApiClient("http://worker:13100", session=make_session(204))
    client.send_exit_causes_for_pre_compute_stage(
        SecretStr("token"), CHAIN_TASK_ID, [OutputFolderNotFound()]
    )
