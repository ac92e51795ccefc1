from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Type

from .errors import FormatError, LicenseError


DATE_FORMAT = "%Y-%m-%d"
DEFAULT_SCHEMA_VERSION = "1"
SUPPORTED_SCHEMA_VERSIONS = frozenset({DEFAULT_SCHEMA_VERSION})

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Python attribute -> JSON key in the token payload.
_STRING_FIELDS = {
    "schema_version": "version",
    "license_type": "type",
    "issuer": "issuer",
    "subject": "subject",
    "issued_at": "issued_at",
    "expires_at": "expires_at",
}
_LIST_FIELDS = {
    "audience": "audience",
    "features": "features",
    "plans": "plans",
}
_MAP_FIELDS = {
    "restrictions": "restrictions",
    "metadata": "metadata",
}


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Only the exact 4-2-2 digit form naming a real calendar day is accepted.

    Args:
        value: Candidate date string.

    Returns:
        The parsed date, or None if value is not a valid date string.
    """
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def date_boundary(d: date) -> datetime:
    """Return the instant a calendar date starts: midnight UTC."""
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    """
    Normalize a clock reading to an aware UTC datetime.

    Args:
        now: Explicit moment to use. Naive values are read as UTC.
             If None, the current time is used.

    Returns:
        Timezone-aware datetime.
    """
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _check_str(name: str, value: Any, error_cls: Type[LicenseError]) -> str:
    if not isinstance(value, str):
        raise error_cls(f"{name} must be a string, got {type(value).__name__}")
    return value


def _check_str_list(
    name: str, value: Any, error_cls: Type[LicenseError]
) -> Tuple[str, ...]:
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise error_cls(f"{name} must be a list of strings")
    for item in value:
        if not isinstance(item, str):
            raise error_cls(f"{name} must contain only strings")
    return tuple(value)


def _check_str_map(
    name: str, value: Any, error_cls: Type[LicenseError]
) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        raise error_cls(f"{name} must be a mapping of strings to strings")
    out: Dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise error_cls(f"{name} must map strings to strings")
        out[k] = v
    return out


class FrozenMap(Mapping):
    """
    Read-only, hashable mapping over a private copy of its input.

    Copies and pickles like a plain object, so records holding it support
    ``hash()``, ``copy.deepcopy()`` and ``dataclasses.asdict()``.
    """

    def __init__(self, data: Optional[Mapping[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(data or {})

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self) -> int:
        return hash(frozenset(self._data.items()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"


@dataclass(frozen=True)
class LicenseRecord:
    """
    Immutable license record carried inside a signed token.

    Sequences are stored as tuples and mappings as read-only FrozenMap
    copies, so neither the caller's inputs nor a decoded record can alter an
    issued token. A single string where a sequence is expected raises
    FormatError.

    **Identity:** schema_version, license_type, issuer, subject

    **Entitlements:** audience, features, plans, restrictions

    **Validity window:** issued_at, expires_at (``YYYY-MM-DD``, read as
    midnight UTC at the start of that day)

    **Opaque:** metadata, never consulted for any validity decision

    Attributes:
        schema_version: Payload format version (``"1"``).
        license_type: Free-form category such as "trial" or "commercial".
        issuer: Signing authority.
        subject: Licensee.
        audience: Intended consumers/products, in order.
        features: Enabled capability flags.
        restrictions: Constraint key/value pairs, interpreted by the application.
        metadata: Auxiliary key/value data.
        issued_at: Issue date.
        expires_at: Expiration date.
        plans: Subscription or service plan identifiers, in order.
    """

    schema_version: str = DEFAULT_SCHEMA_VERSION
    license_type: str = ""
    issuer: str = ""
    subject: str = ""
    audience: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    restrictions: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, str] = field(default_factory=dict)
    issued_at: str = ""
    expires_at: str = ""
    plans: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in _LIST_FIELDS:
            value = getattr(self, name)
            if value is None:
                value = ()
            elif isinstance(value, (str, bytes)):
                raise FormatError(
                    f"{name} must be a sequence of strings, not a single {type(value).__name__}"
                )
            elif isinstance(value, Iterable):
                value = tuple(value)
            object.__setattr__(self, name, value)
        for name in _MAP_FIELDS:
            value = getattr(self, name)
            if value is None:
                value = {}
            if isinstance(value, Mapping):
                value = FrozenMap(value)
            object.__setattr__(self, name, value)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def validate(self, error_cls: Type[LicenseError] = FormatError) -> None:
        """
        Check field types and date formats.

        Args:
            error_cls: Exception class raised on the first problem found.

        Raises:
            error_cls: If a field has the wrong type, the schema version is not
                       supported, or issued_at/expires_at is non-empty and not
                       a valid ``YYYY-MM-DD`` date.
        """
        for name in _STRING_FIELDS:
            _check_str(name, getattr(self, name), error_cls)
        for name in _LIST_FIELDS:
            _check_str_list(name, getattr(self, name), error_cls)
        for name in _MAP_FIELDS:
            _check_str_map(name, getattr(self, name), error_cls)
        if self.schema_version not in SUPPORTED_SCHEMA_VERSIONS:
            raise error_cls(f"Unsupported license schema version: {self.schema_version!r}")
        for name in ("issued_at", "expires_at"):
            value = getattr(self, name)
            if value and parse_date(value) is None:
                raise error_cls(f"{name} is not a valid {DATE_FORMAT} date: {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Return the record as a fresh JSON-ready dictionary keyed by payload names."""
        out: Dict[str, Any] = {}
        for name, key in _STRING_FIELDS.items():
            out[key] = getattr(self, name)
        for name, key in _LIST_FIELDS.items():
            out[key] = list(getattr(self, name))
        for name, key in _MAP_FIELDS.items():
            out[key] = dict(getattr(self, name))
        return out

    @classmethod
    def from_dict(cls, payload: Any) -> "LicenseRecord":
        """
        Build a record from a decoded token payload.

        Missing keys and JSON nulls take their defaults; a missing or empty
        version becomes ``"1"``. Unknown keys are ignored.

        Args:
            payload: Decoded JSON value.

        Returns:
            LicenseRecord with the payload's values.

        Raises:
            FormatError: If payload is not an object, a value has the wrong
                         type, or the schema version is not supported.
        """
        if not isinstance(payload, dict):
            raise FormatError("Payload is not a JSON object")

        kwargs: Dict[str, Any] = {}
        for name, key in _STRING_FIELDS.items():
            value = payload.get(key)
            if value is not None:
                kwargs[name] = _check_str(key, value, FormatError)
        for name, key in _LIST_FIELDS.items():
            value = payload.get(key)
            if value is not None:
                kwargs[name] = _check_str_list(key, value, FormatError)
        for name, key in _MAP_FIELDS.items():
            value = payload.get(key)
            if value is not None:
                kwargs[name] = _check_str_map(key, value, FormatError)

        if not kwargs.get("schema_version"):
            kwargs["schema_version"] = DEFAULT_SCHEMA_VERSION
        if kwargs["schema_version"] not in SUPPORTED_SCHEMA_VERSIONS:
            raise FormatError(
                f"Unsupported license schema version: {kwargs['schema_version']!r}"
            )

        return cls(**kwargs)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def matches_issuer(self, expected: str) -> bool:
        return self.issuer == expected

    def matches_subject(self, expected: str) -> bool:
        return self.subject == expected

    def matches_type(self, expected: str) -> bool:
        return self.license_type == expected

    def has_audience(self, name: str) -> bool:
        return name in self.audience

    def has_feature(self, name: str) -> bool:
        return name in self.features

    def has_plan(self, name: str) -> bool:
        return name in self.plans

    def has_restriction(self, key: str, value: str) -> bool:
        """True if restriction ``key`` exists and equals ``value``; missing keys are False."""
        return key in self.restrictions and self.restrictions[key] == value

    def issued_on(self) -> Optional[date]:
        """Parsed issued_at, or None when absent or malformed."""
        return parse_date(self.issued_at)

    def expires_on(self) -> Optional[date]:
        """Parsed expires_at, or None when absent or malformed."""
        return parse_date(self.expires_at)

    def is_currently_valid(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the license is inside its validity window.

        A malformed or missing expires_at is never valid.

        Args:
            now: Moment to check against. Defaults to the current UTC time.

        Returns:
            True if expires_at parses and now is strictly before it.
        """
        expires = self.expires_on()
        if expires is None:
            return False
        return resolve_now(now) < date_boundary(expires)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the license is past its expiration date.

        A malformed expires_at is *not* reported as expired; use
        is_currently_valid() to fail closed on bad dates.

        Args:
            now: Moment to check against. Defaults to the current UTC time.

        Returns:
            True if expires_at parses and now is strictly after it.
        """
        expires = self.expires_on()
        if expires is None:
            return False
        return resolve_now(now) > date_boundary(expires)
