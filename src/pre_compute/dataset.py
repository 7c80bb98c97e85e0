"""Encrypted dataset download, checksum verification and decryption.

A dataset is fetched either from a plain HTTP(S) URL or, when its locator is
a multiaddr such as ``/ipfs/Qm...``, from the first public gateway that
serves it. The SHA-256 checksum of the raw encrypted bytes is verified before
any decryption is attempted. The payload layout is ``IV (16 bytes) ||
AES-256-CBC ciphertext`` with PKCS#7 padding.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from multiaddr import Multiaddr
from multiaddr.exceptions import Error as MultiaddrError

from pre_compute.causes import (
    DatasetDecryptionFailed,
    DatasetDownloadFailed,
    InvalidDatasetChecksum,
)
from pre_compute.result import Err, FetchResult, Ok
from pre_compute.secrets import SecretStr
from pre_compute.utils.hash import sha256_bytes
from pre_compute.utils.http import download_from_url

logger = logging.getLogger(__name__)

IPFS_GATEWAYS: tuple[str, ...] = (
    "https://ipfs-gateway.v8-bellecour.iex.ec",
    "https://gateway.ipfs.io",
    "https://gateway.pinata.cloud",
)
AES_KEY_LENGTH = 32
AES_IV_LENGTH = 16
AES_BLOCK_BITS = 128
IPFS_PREFIX = "/ipfs/"
P2P_PREFIX = "/p2p/"


@dataclass(frozen=True)
class Dataset:
    """Everything needed to download, verify and decrypt one dataset."""

    url: str
    checksum: str
    filename: str
    key: SecretStr

    def download_encrypted_dataset(self, chain_task_id: str) -> FetchResult:
        """Download the encrypted bytes and verify their checksum.

        Returns ``Ok(bytes)``, ``Err(DatasetDownloadFailed)`` when no source
        served the file, or ``Err(InvalidDatasetChecksum)`` when the digest of
        the downloaded bytes does not match.
        """
        logger.info(
            "Downloading encrypted dataset file [chainTaskId:%s, url:%s]", chain_task_id, self.url
        )
        if is_multi_address(self.url):
            encrypted_content = _download_from_gateways(self.url)
        else:
            encrypted_content = download_from_url(self.url)

        if encrypted_content is None:
            return Err(DatasetDownloadFailed(self.filename))

        logger.info("Checking encrypted dataset checksum [chainTaskId:%s]", chain_task_id)
        actual_checksum = sha256_bytes(encrypted_content)
        if actual_checksum != self.checksum:
            logger.error(
                "Invalid dataset checksum [chainTaskId:%s, expected:%s, actual:%s]",
                chain_task_id,
                self.checksum,
                actual_checksum,
            )
            return Err(InvalidDatasetChecksum(self.filename))

        logger.info("Dataset downloaded and verified successfully.")
        return Ok(encrypted_content)

    def decrypt_dataset(self, encrypted_content: bytes) -> FetchResult:
        """Decrypt ``IV || ciphertext`` with the dataset's base64 AES-256 key.

        Bad key encoding, wrong key length, a payload shorter than one IV and
        any padding or cipher error all yield the same
        ``DatasetDecryptionFailed`` so callers cannot tell them apart.
        """
        try:
            key = base64.b64decode(self.key.reveal(), validate=True)
        except (binascii.Error, ValueError):
            return Err(DatasetDecryptionFailed(self.filename))

        if len(encrypted_content) < AES_IV_LENGTH or len(key) != AES_KEY_LENGTH:
            return Err(DatasetDecryptionFailed(self.filename))

        iv = encrypted_content[:AES_IV_LENGTH]
        ciphertext = encrypted_content[AES_IV_LENGTH:]
        try:
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(AES_BLOCK_BITS).unpadder()
            plain_content = unpadder.update(padded) + unpadder.finalize()
        except ValueError:
            return Err(DatasetDecryptionFailed(self.filename))
        return Ok(plain_content)


def is_multi_address(uri: str) -> bool:
    """Return True when ``uri`` parses as a multiaddr (e.g. ``/ipfs/<cid>``).

    Releases of ``multiaddr`` that only register the ``p2p`` protocol name
    reject ``/ipfs/``, so such locators are parsed again under ``/p2p/``.
    The locator itself is never rewritten.
    """
    if not uri or not uri.strip():
        return False
    if _parses_as_multiaddr(uri):
        return True
    if uri.startswith(IPFS_PREFIX):
        return _parses_as_multiaddr(P2P_PREFIX + uri[len(IPFS_PREFIX) :])
    return False


def _parses_as_multiaddr(uri: str) -> bool:
    try:
        Multiaddr(uri)
    except (MultiaddrError, ValueError):
        return False
    return True


def _download_from_gateways(multi_address: str) -> bytes | None:
    for gateway in IPFS_GATEWAYS:
        full_url = f"{gateway}{multi_address}"
        logger.info("Attempting to download dataset from %s", full_url)
        content = download_from_url(full_url)
        if content is not None:
            logger.info("Successfully downloaded from %s", full_url)
            return content
        logger.error("Failed to download from %s", full_url)
    return None
