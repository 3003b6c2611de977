"""RSA-OAEP decryption of secrets stored encrypted at rest.

Secrets in the plugin configuration (the data store password, the upstream
endpoint password) are stored as base64 text produced by encrypting the
plaintext with the plugin's RSA public key under OAEP/SHA-512. This module
recovers the plaintext from that text using the matching private key.

Example:
    >>> decryptor = SecretDecryptor(Path("/etc/plugin/rsa.key").read_bytes())
    >>> password = decryptor.decrypt(config.db.encrypted_password)
"""

from __future__ import annotations

import base64
import binascii
import logging
import re

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from aciplugin.config.errors import DecryptionError

logger = logging.getLogger(__name__)

__all__ = ["SecretDecryptor", "decrypt_secret", "load_rsa_private_key"]

_PKCS1_LABEL = "RSA PRIVATE KEY"
_PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN (?P<label>[A-Z0-9 ]+)-----\r?\n(?P<body>.*?)-----END (?P=label)-----",
    re.DOTALL,
)


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA512()),
        algorithm=hashes.SHA512(),
        label=None,
    )


def _is_encrypted_block(body: bytes) -> bool:
    for line in body.splitlines():
        line = line.strip()
        if not line:
            # Headers end at the first blank line.
            break
        if line.startswith(b"Proc-Type:") and b"ENCRYPTED" in line:
            return True
    return False


def load_rsa_private_key(
    key_material: bytes, passphrase: bytes | None = None
) -> rsa.RSAPrivateKey:
    """Parse a PEM ``RSA PRIVATE KEY`` block into a private key.

    A block that declares itself encrypted is decrypted with ``passphrase``;
    without one it cannot be used.

    Raises:
        DecryptionError: If the block is missing, is not PKCS#1 RSA, is
            encrypted without a passphrase, or cannot be parsed.
    """
    match = _PEM_BLOCK_RE.search(key_material)
    if match is None:
        raise DecryptionError("no PEM block found in RSA private key material")

    label = match.group("label").decode("ascii")
    if label != _PKCS1_LABEL:
        raise DecryptionError(f"unsupported key block type {label!r}, expected {_PKCS1_LABEL!r}")

    if _is_encrypted_block(match.group("body")):
        if passphrase is None:
            raise DecryptionError(
                "RSA private key block is encrypted but no passphrase was supplied"
            )
        logger.debug("RSA private key block is encrypted, decrypting with supplied passphrase")
    else:
        passphrase = None

    try:
        key = serialization.load_pem_private_key(match.group(0), password=passphrase)
    except (ValueError, TypeError) as exc:
        raise DecryptionError(f"failed to parse RSA private key: {exc}") from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise DecryptionError("key block does not contain an RSA private key")
    return key


def decrypt_secret(
    ciphertext: str, key_material: bytes, passphrase: bytes | None = None
) -> bytes:
    """Decrypt a base64-encoded RSA-OAEP ciphertext.

    Args:
        ciphertext: Base64 text (standard alphabet, padded).
        key_material: PEM bytes of the RSA private key.
        passphrase: Passphrase for an encrypted key block, if any.

    Returns:
        The recovered plaintext bytes.

    Raises:
        DecryptionError: If any step fails.
    """
    try:
        decoded = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"failed to base64-decode encrypted secret: {exc}") from exc

    key = load_rsa_private_key(key_material, passphrase)
    try:
        return key.decrypt(decoded, _oaep())
    except ValueError as exc:
        raise DecryptionError(
            "failed to decrypt secret with the configured RSA private key"
        ) from exc


class SecretDecryptor:
    """Decrypts secrets with a fixed RSA private key.

    The key bytes are held unchanged and parsed for each call, so a single
    instance can be shared between threads.
    """

    def __init__(self, key_material: bytes, passphrase: bytes | None = None):
        self._key_material = bytes(key_material)
        self._passphrase = passphrase

    def decrypt(self, ciphertext: str) -> bytes:
        return decrypt_secret(ciphertext, self._key_material, self._passphrase)

    def decrypt_text(self, ciphertext: str, encoding: str = "utf-8") -> str:
        try:
            return self.decrypt(ciphertext).decode(encoding)
        except UnicodeDecodeError as exc:
            raise DecryptionError(f"decrypted secret is not valid {encoding}") from exc
