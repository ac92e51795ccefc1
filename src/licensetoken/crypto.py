from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import KeyFormatError


PRIVATE_KEY_LABEL = "RSA PRIVATE KEY"
PUBLIC_KEY_LABEL = "PUBLIC KEY"

_PEM_BEGIN_RE = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----")


@dataclass(frozen=True)
class KeyPair:
    """
    Immutable container for an RSA keypair.

    Attributes:
        private_pem: PKCS#1 ``RSA PRIVATE KEY`` PEM (bytes). Must be kept secret.
        public_pem: SubjectPublicKeyInfo ``PUBLIC KEY`` PEM (bytes). Safe to distribute.
    """

    private_pem: bytes
    public_pem: bytes


def generate_keypair(key_size: int = 2048) -> KeyPair:
    """
    Generate a new RSA keypair for license signing and verification.

    The private key should be kept secure (vendor-only), while the public key
    can be safely distributed with applications.

    Args:
        key_size: Modulus size in bits.

    Returns:
        KeyPair containing PEM-encoded private and public keys.
    """
    sk = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = sk.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = sk.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return KeyPair(private_pem=private_pem, public_pem=public_pem)


def _as_bytes(pem: Union[str, bytes]) -> bytes:
    if isinstance(pem, str):
        return pem.encode("ascii", errors="replace")
    if isinstance(pem, (bytes, bytearray)):
        return bytes(pem)
    raise KeyFormatError(f"PEM data must be str or bytes, got {type(pem).__name__}")


def _require_label(pem: bytes, label: str) -> None:
    m = _PEM_BEGIN_RE.search(pem)
    if m is None:
        raise KeyFormatError("No PEM block found in key data")
    found = m.group(1).decode("ascii")
    if found != label:
        raise KeyFormatError(f"Expected a '{label}' PEM block, got '{found}'")


def load_private_key(pem: Union[str, bytes]) -> rsa.RSAPrivateKey:
    """
    Load an RSA private key from a PKCS#1 ``RSA PRIVATE KEY`` PEM block.

    Args:
        pem: PEM-formatted private key (str or bytes), unencrypted.

    Returns:
        RSA private key object for token signing.

    Raises:
        KeyFormatError: If the data is not an unencrypted PKCS#1 RSA private key PEM.
    """
    data = _as_bytes(pem)
    _require_label(data, PRIVATE_KEY_LABEL)
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyFormatError("Failed to decode RSA private key PEM") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyFormatError("Not an RSA private key")
    return key


def load_public_key(pem: Union[str, bytes]) -> rsa.RSAPublicKey:
    """
    Load an RSA public key from a SubjectPublicKeyInfo ``PUBLIC KEY`` PEM block.

    Args:
        pem: PEM-formatted public key (str or bytes).

    Returns:
        RSA public key object for token signature verification.

    Raises:
        KeyFormatError: If the data is not a PKIX PEM block or the key is not RSA.
    """
    data = _as_bytes(pem)
    _require_label(data, PUBLIC_KEY_LABEL)
    try:
        key = serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyFormatError("Failed to decode public key PEM") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyFormatError("Not an RSA public key")
    return key
