"""Shared utility functions for the pre-compute stage."""

from pre_compute.utils.hash import sha256_bytes, sha256_text
from pre_compute.utils.http import build_user_agent, download_from_url, http_get_bytes
from pre_compute.utils.io import ensure_under_root, write_file

__all__ = [
    "sha256_bytes",
    "sha256_text",
    "build_user_agent",
    "http_get_bytes",
    "download_from_url",
    "ensure_under_root",
    "write_file",
]
