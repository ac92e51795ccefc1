from .errors import (
    LicenseError,
    KeyFormatError,
    EncodingError,
    FormatError,
    SignatureError,
    ExpiredError,
    SigningError,
)
from .record import LicenseRecord, parse_date, DATE_FORMAT, DEFAULT_SCHEMA_VERSION
from .crypto import generate_keypair, load_private_key, load_public_key, KeyPair
from .token import (
    canonical_json,
    sign_message,
    encode_token,
    issue_token,
    issue_token_pem,
    verify_token,
    verify_token_pem,
    decode_record,
)
from .policy import (
    require_issuer,
    require_type,
    require_audience,
    require_feature,
    require_any_feature,
    require_all_features,
    require_plan,
    require_restriction,
    PolicyError,
)
from .io import (
    read_key_file,
    load_private_key_file,
    load_public_key_file,
    KeyFileError,
)
from .config import CliConfig, load_config, ConfigError

__version__ = "0.1.0"

__all__ = [
    "LicenseError",
    "KeyFormatError",
    "EncodingError",
    "FormatError",
    "SignatureError",
    "ExpiredError",
    "SigningError",
    "LicenseRecord",
    "parse_date",
    "DATE_FORMAT",
    "DEFAULT_SCHEMA_VERSION",
    "KeyPair",
    "generate_keypair",
    "load_private_key",
    "load_public_key",
    "canonical_json",
    "sign_message",
    "encode_token",
    "issue_token",
    "issue_token_pem",
    "verify_token",
    "verify_token_pem",
    "decode_record",
    "require_issuer",
    "require_type",
    "require_audience",
    "require_feature",
    "require_any_feature",
    "require_all_features",
    "require_plan",
    "require_restriction",
    "PolicyError",
    "read_key_file",
    "load_private_key_file",
    "load_public_key_file",
    "KeyFileError",
    "CliConfig",
    "load_config",
    "ConfigError",
]

# Testing utilities - conditionally imported to avoid pytest dependency in production
try:
    from .testing_utils import (
        license_keypair,
        other_keypair,
        license_record,
        issue_license,
    )

    __all__ += [
        "license_keypair",
        "other_keypair",
        "license_record",
        "issue_license",
    ]
except ImportError:
    # pytest not available, testing utilities not exported
    pass
