from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pre_compute import cli
from pre_compute import env as env_vars
from pre_compute.causes import DatasetUrlMissing, OutputFolderNotFound
from pre_compute.cli import ExitMode, run_pre_compute
from pre_compute.env import MappingEnvironment
from pre_compute.exceptions import WorkerApiError
from pre_compute.secrets import SecretStr

from conftest import CHAIN_TASK_ID


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class FakeApp:
    def __init__(self, causes):
        self.causes = causes
        self.created_with: list[str] = []

    def __call__(self, chain_task_id, env):
        self.created_with.append(chain_task_id)
        return self

    def run(self):
        return list(self.causes)


def task_env(**extra: str) -> MappingEnvironment:
    return MappingEnvironment({env_vars.IEXEC_TASK_ID: CHAIN_TASK_ID, **extra})


def test_run_pre_compute_fails_to_initialize_without_task_id() -> None:
    client = MagicMock()
    app = FakeApp([])

    mode = run_pre_compute(MappingEnvironment(), client, app_factory=app)

    assert mode is ExitMode.INITIALIZATION_FAILURE
    assert int(mode) == 3
    assert app.created_with == []
    client.send_exit_causes_for_pre_compute_stage.assert_not_called()


def test_run_pre_compute_succeeds_without_causes() -> None:
    client = MagicMock()
    app = FakeApp([])

    mode = run_pre_compute(task_env(), client, authorization=SecretStr("t"), app_factory=app)

    assert mode is ExitMode.SUCCESS
    assert app.created_with == [CHAIN_TASK_ID]
    client.send_exit_causes_for_pre_compute_stage.assert_not_called()


def test_run_pre_compute_reports_causes() -> None:
    client = MagicMock()
    causes = [OutputFolderNotFound(), DatasetUrlMissing("d")]
    token = SecretStr("token")

    mode = run_pre_compute(task_env(), client, authorization=token, app_factory=FakeApp(causes))

    assert mode is ExitMode.REPORTED_FAILURE
    client.send_exit_causes_for_pre_compute_stage.assert_called_once_with(
        token, CHAIN_TASK_ID, causes
    )


def test_run_pre_compute_unreported_when_worker_rejects() -> None:
    client = MagicMock()
    client.send_exit_causes_for_pre_compute_stage.side_effect = WorkerApiError(
        "rejected", url="http://worker/compute/pre/x/exit", status_code=500
    )

    mode = run_pre_compute(
        task_env(),
        client,
        authorization=SecretStr("token"),
        app_factory=FakeApp([OutputFolderNotFound()]),
    )

    assert mode is ExitMode.UNREPORTED_FAILURE


def test_run_pre_compute_unreported_without_authorization() -> None:
    client = MagicMock()

    mode = run_pre_compute(task_env(), client, app_factory=FakeApp([OutputFolderNotFound()]))

    assert mode is ExitMode.UNREPORTED_FAILURE
    client.send_exit_causes_for_pre_compute_stage.assert_not_called()


def test_main_returns_initialization_failure_for_missing_env_file(tmp_path: Path) -> None:
    assert cli.main(["--env-file", str(tmp_path / "missing.yaml")]) == 3


def test_main_returns_initialization_failure_for_invalid_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / "session.yaml"
    env_file.write_text("IEXEC_TASK_ID: [\n", encoding="utf-8")
    assert cli.main(["--env-file", str(env_file)]) == 3


def test_main_runs_with_env_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, output_dir: Path
) -> None:
    for name in (env_vars.IEXEC_TASK_ID, env_vars.PRE_COMPUTE_AUTHORIZATION):
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / "session.yaml"
    env_file.write_text(
        "\n".join(
            [
                f"IEXEC_TASK_ID: '{CHAIN_TASK_ID}'",
                f"IEXEC_PRE_COMPUTE_OUT: '{output_dir}'",
                "IS_DATASET_REQUIRED: 'false'",
                "IEXEC_BULK_SLICE_SIZE: 0",
                "IEXEC_INPUT_FILES_NUMBER: 0",
                "",
            ]
        ),
        encoding="utf-8",
    )

    assert cli.main(["--env-file", str(env_file), "--workers", "2"]) == 0


def test_main_reports_with_authorization_flag(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    sent: list[tuple] = []

    def fake_send(self, authorization, chain_task_id, exit_causes):
        sent.append((self.base_url, authorization.reveal(), chain_task_id, exit_causes))

    monkeypatch.setattr(cli.WorkerApiClient, "send_exit_causes_for_pre_compute_stage", fake_send)
    env_file = tmp_path / "session.yaml"
    env_file.write_text(
        f"IEXEC_TASK_ID: '{CHAIN_TASK_ID}'\nIEXEC_PRE_COMPUTE_OUT: '{tmp_path / 'nope'}'\n",
        encoding="utf-8",
    )

    code = cli.main(
        [
            "--env-file",
            str(env_file),
            "--authorization",
            "flag-token",
            "--worker-host",
            "localhost:9999",
        ]
    )

    assert code == 1
    assert sent == [
        ("http://localhost:9999", "flag-token", CHAIN_TASK_ID, [OutputFolderNotFound()])
    ]


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert "pre-compute" in capsys.readouterr().out
