from __future__ import annotations


class LicenseError(RuntimeError):
    """Base class for every error raised by licensetoken."""

    pass


class KeyFormatError(LicenseError):
    """Key material is not valid PEM/DER or is not an RSA key of the expected kind."""

    pass


class EncodingError(LicenseError):
    """Token halves are not valid base64, or a record cannot be serialized."""

    pass


class FormatError(LicenseError):
    """Token shape is wrong or the decoded payload fails schema validation."""

    pass


class SignatureError(LicenseError):
    """The payload does not match the signature under the given public key."""

    pass


class ExpiredError(LicenseError):
    """The signature is valid but the license is past its expiration date."""

    pass


class SigningError(LicenseError):
    """The private key signing operation failed."""

    pass
