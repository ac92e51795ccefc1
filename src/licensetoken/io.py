from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from cryptography.hazmat.primitives.asymmetric import rsa

from .crypto import load_private_key, load_public_key
from .errors import LicenseError


class KeyFileError(LicenseError):
    """Exception raised when a key file cannot be read from disk."""

    pass


def read_key_file(path: Union[str, os.PathLike]) -> bytes:
    """
    Read raw PEM bytes from a key file.

    Args:
        path: Path to the PEM file. ``~`` is expanded.

    Returns:
        File contents.

    Raises:
        KeyFileError: If the file cannot be read.
    """
    p = Path(path).expanduser()
    try:
        return p.read_bytes()
    except OSError as e:
        raise KeyFileError(f"Failed to read key file: {p}") from e


def load_private_key_file(path: Union[str, os.PathLike]) -> rsa.RSAPrivateKey:
    """
    Load an RSA private key from a PKCS#1 PEM file.

    Raises:
        KeyFileError: If the file cannot be read.
        KeyFormatError: If the file is not an RSA PRIVATE KEY PEM.
    """
    return load_private_key(read_key_file(path))


def load_public_key_file(path: Union[str, os.PathLike]) -> rsa.RSAPublicKey:
    """
    Load an RSA public key from a PKIX PEM file.

    Raises:
        KeyFileError: If the file cannot be read.
        KeyFormatError: If the file is not a PUBLIC KEY PEM wrapping an RSA key.
    """
    return load_public_key(read_key_file(path))
