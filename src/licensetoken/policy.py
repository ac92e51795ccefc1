from __future__ import annotations

from .errors import LicenseError
from .record import LicenseRecord


class PolicyError(LicenseError):
    """Exception raised when a license policy requirement is not met."""

    pass


def require_issuer(record: LicenseRecord, expected: str) -> None:
    """
    Enforce that the license was issued by a specific authority.

    Raises:
        PolicyError: If the issuer does not match exactly.
    """
    if not record.matches_issuer(expected):
        raise PolicyError(
            f"License issuer '{record.issuer}' does not match '{expected}'."
        )


def require_type(record: LicenseRecord, expected: str) -> None:
    """
    Enforce the license type.

    Raises:
        PolicyError: If the license type does not match exactly.
    """
    if not record.matches_type(expected):
        raise PolicyError(
            f"License type '{record.license_type}' does not match '{expected}'."
        )


def require_audience(record: LicenseRecord, name: str) -> None:
    """
    Enforce that the license is intended for a given consumer/product.

    Raises:
        PolicyError: If name is not in the license audience.
    """
    if not record.has_audience(name):
        raise PolicyError(f"License not valid for audience '{name}'.")


def require_feature(record: LicenseRecord, feature: str) -> None:
    """
    Enforce that a specific feature is enabled in the license.

    Args:
        record: Verified license record.
        feature: Required feature name.

    Raises:
        PolicyError: If the feature is not enabled in the license.
    """
    if not record.has_feature(feature):
        raise PolicyError(f"Feature '{feature}' not enabled by license.")


def require_any_feature(record: LicenseRecord, *features: str) -> None:
    """
    Enforce that at least one of the specified features is enabled.

    Raises:
        PolicyError: If none of the features are enabled.
    """
    for f in features:
        if record.has_feature(f):
            return
    raise PolicyError(
        f"None of the required features are enabled: {', '.join(features)}"
    )


def require_all_features(record: LicenseRecord, *features: str) -> None:
    """
    Enforce that all specified features are enabled.

    Raises:
        PolicyError: If any of the features are not enabled.
    """
    for f in features:
        require_feature(record, f)


def require_plan(record: LicenseRecord, plan: str) -> None:
    """
    Enforce that the license includes a subscription plan.

    Raises:
        PolicyError: If plan is not among the license plans.
    """
    if not record.has_plan(plan):
        raise PolicyError(f"Plan '{plan}' not included in license.")


def require_restriction(record: LicenseRecord, key: str, value: str) -> None:
    """
    Enforce that a restriction is present with an exact value.

    Raises:
        PolicyError: If the restriction is missing or has a different value.
    """
    if not record.has_restriction(key, value):
        have = record.restrictions.get(key)
        raise PolicyError(
            f"Restriction '{key}' is {have!r}, required {value!r}."
        )
