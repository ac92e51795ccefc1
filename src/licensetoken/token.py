from __future__ import annotations

import base64
import dataclasses
import hashlib
import json
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa, utils

from .crypto import load_private_key, load_public_key
from .errors import (
    EncodingError,
    ExpiredError,
    FormatError,
    KeyFormatError,
    SignatureError,
    SigningError,
)
from .record import (
    DATE_FORMAT,
    DEFAULT_SCHEMA_VERSION,
    LicenseRecord,
    date_boundary,
    parse_date,
    resolve_now,
)


TOKEN_SEPARATOR = "."


def _b64_encode(b: bytes) -> str:
    """Encode bytes to standard, padded base64 text."""
    return base64.b64encode(b).decode("ascii")


def _b64_decode(s: str) -> bytes:
    """
    Strictly decode standard, padded base64 text.

    Raises:
        EncodingError: If s contains characters outside the base64 alphabet,
                       has incorrect padding, or is not the canonical
                       encoding of its bytes (non-zero trailing bits).
    """
    try:
        out = base64.b64decode(s, validate=True)
    except ValueError as e:
        raise EncodingError("Token base64 decode failed") from e
    if _b64_encode(out) != s:
        raise EncodingError("Token base64 is not canonically encoded")
    return out


def canonical_json(obj: Dict[str, Any]) -> bytes:
    """
    Produce stable JSON encoding for deterministic signatures.

    Uses sorted keys and compact separators to ensure consistent encoding
    regardless of Python version or dict insertion order.

    Args:
        obj: Dictionary to encode as JSON.

    Returns:
        UTF-8 encoded JSON bytes.
    """
    return json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")


def sign_message(message: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
    """
    Sign SHA-256(message) with RSA PKCS#1 v1.5.

    PKCS#1 v1.5 is deterministic: the same key and message always give the
    same signature.

    Args:
        message: Exact bytes to sign.
        private_key: RSA private key.

    Returns:
        Raw signature bytes (modulus length).

    Raises:
        SigningError: If the key is not an RSA private key or signing fails.
    """
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise SigningError(
            f"Signing requires an RSA private key, got {type(private_key).__name__}"
        )
    digest = hashlib.sha256(message).digest()
    try:
        return private_key.sign(
            digest, padding.PKCS1v15(), utils.Prehashed(hashes.SHA256())
        )
    except Exception as e:
        raise SigningError("License signing failed") from e


def encode_token(message: bytes, signature: bytes) -> str:
    """Join payload and signature as ``base64(message).base64(signature)``."""
    return f"{_b64_encode(message)}{TOKEN_SEPARATOR}{_b64_encode(signature)}"


def _split_token(token: str) -> Tuple[bytes, bytes]:
    """
    Split and decode a signed token into message and signature components.

    Expected format: base64(message).base64(signature)

    The separator is checked before any decoding is attempted; base64 never
    produces '.', so exactly one must be present.

    Args:
        token: Signed token string.

    Returns:
        Tuple of (decoded_message, decoded_signature) bytes.

    Raises:
        FormatError: If the token does not have exactly two non-empty parts.
        EncodingError: If either part is not valid base64.
    """
    if not isinstance(token, str):
        raise FormatError(f"Token must be a string, got {type(token).__name__}")

    parts = token.split(TOKEN_SEPARATOR)
    if len(parts) != 2:
        raise FormatError(
            f"Token must have exactly one '{TOKEN_SEPARATOR}' separator, "
            f"found {len(parts) - 1}"
        )

    msg_b64, sig_b64 = parts
    if not msg_b64 or not sig_b64:
        raise FormatError("Token missing message or signature")

    return _b64_decode(msg_b64), _b64_decode(sig_b64)


def _parse_record(message: bytes) -> LicenseRecord:
    try:
        payload = json.loads(message.decode("utf-8"))
    except (ValueError, RecursionError) as e:
        raise FormatError("Payload is not valid UTF-8 JSON") from e
    return LicenseRecord.from_dict(payload)


def issue_token(record: LicenseRecord, private_key: rsa.RSAPrivateKey) -> str:
    """
    Create a signed license token from a record.

    Creates a token in the format:
      base64(canonical_json(record)) + "." + base64(signature)

    The record itself is not modified; an empty schema version is replaced
    with ``"1"`` in the issued copy.

    Args:
        record: License record to sign.
        private_key: RSA private key used for signing.

    Returns:
        Signed token string.

    Raises:
        EncodingError: If the record has wrongly typed fields or malformed dates.
        SigningError: If the key is unusable or signing fails.
    """
    if not isinstance(record, LicenseRecord):
        raise EncodingError(
            f"Expected a LicenseRecord, got {type(record).__name__}"
        )
    if not record.schema_version:
        record = dataclasses.replace(record, schema_version=DEFAULT_SCHEMA_VERSION)

    record.validate(EncodingError)
    try:
        msg = canonical_json(record.to_dict())
    except (TypeError, ValueError) as e:
        raise EncodingError("License record serialization failed") from e

    return encode_token(msg, sign_message(msg, private_key))


def decode_record(token: str) -> LicenseRecord:
    """
    Decode the license record from a token without verifying its signature.

    WARNING: This should only be used for debugging or display purposes.
    Always use verify_token() for security-critical operations.

    Args:
        token: Signed token string.

    Returns:
        Decoded, *untrusted* LicenseRecord.

    Raises:
        FormatError: If the token shape or payload structure is invalid.
        EncodingError: If either part is not valid base64.
    """
    msg, _sig = _split_token(token)
    return _parse_record(msg)


def verify_token(
    token: str,
    public_key: rsa.RSAPublicKey,
    *,
    now: Optional[datetime] = None,
) -> LicenseRecord:
    """
    Verify a license token and return its record.

    Checks, in this order: token shape, base64, payload structure, the RSA
    PKCS#1 v1.5 signature over SHA-256 of the payload bytes exactly as
    transmitted, and finally the expiration date. No claim is trusted
    before the signature check passes.

    A license expires at the start (midnight UTC) of its expires_at date.
    Only a moment strictly after that instant raises ExpiredError, so at
    exactly midnight the token still verifies while
    ``LicenseRecord.is_currently_valid()`` on the returned record is already
    False. Callers that need both to agree should check the record as well.

    Args:
        token: Signed token string to verify.
        public_key: RSA public key used for verification.
        now: Moment to check expiry against. Defaults to the current UTC time.

    Returns:
        The verified LicenseRecord.

    Raises:
        FormatError: If the token shape or payload is invalid, or expires_at
                     is missing or not a valid date.
        EncodingError: If either part is not valid base64.
        KeyFormatError: If public_key is not an RSA public key.
        SignatureError: If signature verification fails.
        ExpiredError: If the license has expired.
    """
    msg, sig = _split_token(token)
    record = _parse_record(msg)

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyFormatError(
            f"Verification requires an RSA public key, got {type(public_key).__name__}"
        )

    digest = hashlib.sha256(msg).digest()
    try:
        public_key.verify(
            sig, digest, padding.PKCS1v15(), utils.Prehashed(hashes.SHA256())
        )
    except InvalidSignature as e:
        raise SignatureError("Invalid license signature") from e
    except Exception as e:
        raise SignatureError("License verification failed") from e

    expires = parse_date(record.expires_at)
    if expires is None:
        raise FormatError(
            f"expires_at is not a valid {DATE_FORMAT} date: {record.expires_at!r}"
        )
    if resolve_now(now) > date_boundary(expires):
        raise ExpiredError(f"License expired on {record.expires_at}")

    return record


def issue_token_pem(record: LicenseRecord, private_key_pem: Union[str, bytes]) -> str:
    """
    Issue a token using a PEM-encoded private key.

    Raises:
        KeyFormatError: If the PEM cannot be decoded into an RSA private key.
        EncodingError: See issue_token().
        SigningError: See issue_token().
    """
    return issue_token(record, load_private_key(private_key_pem))


def verify_token_pem(
    token: str,
    public_key_pem: Union[str, bytes],
    *,
    now: Optional[datetime] = None,
) -> LicenseRecord:
    """
    Verify a token using a PEM-encoded public key.

    Raises:
        KeyFormatError: If the PEM cannot be decoded into an RSA public key.
        FormatError, EncodingError, SignatureError, ExpiredError: See verify_token().
    """
    return verify_token(token, load_public_key(public_key_pem), now=now)
