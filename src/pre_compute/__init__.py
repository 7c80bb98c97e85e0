"""TEE pre-compute stage: fetch, verify and decrypt task datasets and input files."""

from pre_compute.__version__ import __version__
from pre_compute.app import PreComputeApp
from pre_compute.args import TaskConfig, read_args
from pre_compute.causes import StatusCause, render_message, to_payload, to_payloads
from pre_compute.dataset import Dataset
from pre_compute.env import EnvProvider, LayeredEnvironment, MappingEnvironment, OsEnvironment

__all__ = [
    "__version__",
    "PreComputeApp",
    "TaskConfig",
    "read_args",
    "Dataset",
    "StatusCause",
    "render_message",
    "to_payload",
    "to_payloads",
    "EnvProvider",
    "MappingEnvironment",
    "OsEnvironment",
    "LayeredEnvironment",
]
