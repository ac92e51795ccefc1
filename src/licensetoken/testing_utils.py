"""
Testing utilities for licensetoken - for use in packages that depend on licensetoken.

Load as a pytest plugin from your root conftest.py:

    pytest_plugins = ["licensetoken.testing_utils"]

Fixtures:
  - license_keypair / other_keypair: session-scoped RSA keypairs
    (generation is slow, so they are shared across the session)
  - license_record: a long-lived commercial LicenseRecord
  - issue_license: factory that signs records with license_keypair
"""

import dataclasses

import pytest

from .crypto import KeyPair, generate_keypair, load_private_key, load_public_key
from .record import LicenseRecord
from .token import issue_token


@pytest.fixture(scope="session")
def license_keypair() -> KeyPair:
    """2048-bit RSA keypair used to sign test licenses."""
    return generate_keypair()


@pytest.fixture(scope="session")
def other_keypair() -> KeyPair:
    """An unrelated keypair, for wrong-key scenarios."""
    return generate_keypair()


@pytest.fixture(scope="session")
def license_private_key(license_keypair):
    return load_private_key(license_keypair.private_pem)


@pytest.fixture(scope="session")
def license_public_key(license_keypair):
    return load_public_key(license_keypair.public_pem)


@pytest.fixture
def license_record() -> LicenseRecord:
    """
    A valid commercial license record that expires far in the future.

    Returns:
        LicenseRecord with every field populated.
    """
    return LicenseRecord(
        license_type="commercial",
        issuer="Acme",
        subject="customer-42",
        audience=("acme-desktop", "acme-cli"),
        features=("export", "sync"),
        restrictions={"region": "US", "seats": "5"},
        metadata={"order": "A-1001"},
        issued_at="2024-01-15",
        expires_at="2099-01-01",
        plans=("pro",),
    )


@pytest.fixture
def issue_license(license_private_key, license_record):
    """
    Factory that issues tokens signed with license_keypair.

    Usage:
        token = issue_license()                          # license_record as-is
        token = issue_license(expires_at="2000-01-01")   # with field overrides
        token = issue_license(some_record)               # a specific record
    """

    def _issue(record=None, **fields) -> str:
        base = license_record if record is None else record
        if fields:
            base = dataclasses.replace(base, **fields)
        return issue_token(base, license_private_key)

    return _issue
