import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from .config import load_config, ConfigError
from .errors import KeyFormatError, LicenseError
from .io import KeyFileError, load_public_key_file
from .token import verify_token


logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI command to validate a license token.

    Verifies the token signature with the public key and checks that it has
    not expired. On success prints "License is valid." followed by the
    license record as JSON; otherwise prints the reason to stderr.

    Command-line arguments:
        --config: YAML config file (default: ~/.licensetoken.yaml if present)
        --public-key: Path to the PUBLIC KEY PEM file
        --license-key (required): The token to validate
        --log-level: Logging level name

    Returns:
        Process exit status: 0 if the license is valid, 1 otherwise.
    """
    ap = argparse.ArgumentParser(
        prog="licensetoken-validate", description="Validate a license token."
    )
    ap.add_argument("--config", help="YAML config file")
    ap.add_argument("--public-key", help="Path to the public key PEM file")
    ap.add_argument("--license-key", required=True, help="License token to validate")
    ap.add_argument("--log-level", help="Logging level (default: WARNING)")
    args = ap.parse_args(argv)

    try:
        config = load_config(args.config).merged(
            public_key=args.public_key, log_level=args.log_level
        )
        config.configure_logging()

        if not config.public_key:
            raise ConfigError("public_key is required")
        pub = load_public_key_file(config.public_key)
    except (ConfigError, KeyFileError, KeyFormatError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        record = verify_token(args.license_key.strip(), pub)
    except LicenseError as e:
        logger.debug("Validation failed", exc_info=True)
        print(f"License is invalid: {e}", file=sys.stderr)
        return 1

    print("License is valid.")
    print(json.dumps(record.to_dict(), indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
