import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from .config import load_config, parse_csv, ConfigError
from .errors import LicenseError
from .io import load_private_key_file
from .record import DATE_FORMAT, LicenseRecord
from .token import issue_token


logger = logging.getLogger(__name__)


def _csv_or_none(s: Optional[str]):
    return None if s is None else parse_csv(s)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI command to generate (create and sign) a new license token.

    License fields come from the config file and ``LICENSETOKEN_*``
    environment variables, overridden by command-line options:
      - type, issuer, subject: String claims
      - audience, features, plans: Comma-separated lists
      - restriction, metadata: Repeatable key=value pairs
      - expires_at: Expiration date (YYYY-MM-DD), or --days from today
      - issued_at: Today's date (UTC) unless --issued-at is given

    The token is signed with RSA PKCS#1 v1.5 over SHA-256 and printed to
    stdout in the format: base64(payload).base64(signature)

    Command-line arguments:
        --config: YAML config file (default: ~/.licensetoken.yaml if present)
        --private-key: Path to the RSA PRIVATE KEY PEM file
        --type, --issuer, --subject: License claims
        --expires-at / --days: Expiration date or validity in days
        --issued-at: Issue date override
        --audience, --features, --plans: Comma-separated values
        --restriction, --metadata: key=value, may be repeated
        --log-level: Logging level name

    Returns:
        Process exit status: 0 on success, 1 on any error.
    """
    ap = argparse.ArgumentParser(
        prog="licensetoken-generate", description="Generate a signed license token."
    )
    ap.add_argument("--config", help="YAML config file")
    ap.add_argument("--private-key", help="Path to the private key PEM file")
    ap.add_argument("--type", dest="license_type", help="License type")
    ap.add_argument("--issuer", help="License issuer")
    ap.add_argument("--subject", help="Licensee")
    expiry = ap.add_mutually_exclusive_group()
    expiry.add_argument("--expires-at", help="Expiration date (YYYY-MM-DD)")
    expiry.add_argument("--days", type=int, help="Validity in days from today")
    ap.add_argument("--issued-at", help="Issue date (YYYY-MM-DD, default: today)")
    ap.add_argument("--audience", help="comma-separated audience")
    ap.add_argument("--features", help="comma-separated feature flags")
    ap.add_argument("--plans", help="comma-separated plan identifiers")
    ap.add_argument(
        "--restriction", action="append", metavar="KEY=VALUE", help="may be repeated"
    )
    ap.add_argument(
        "--metadata", action="append", metavar="KEY=VALUE", help="may be repeated"
    )
    ap.add_argument("--log-level", help="Logging level (default: WARNING)")
    args = ap.parse_args(argv)

    try:
        config = load_config(args.config).merged(
            private_key=args.private_key,
            license_type=args.license_type,
            issuer=args.issuer,
            subject=args.subject,
            expires_at=args.expires_at,
            audience=_csv_or_none(args.audience),
            features=_csv_or_none(args.features),
            plans=_csv_or_none(args.plans),
            restrictions=args.restriction,
            metadata=args.metadata,
            log_level=args.log_level,
        )
        config.configure_logging()

        if not config.private_key:
            raise ConfigError("private_key is required")
        priv = load_private_key_file(config.private_key)

        today = datetime.now(timezone.utc).date()
        expires_at = config.expires_at
        if args.days is not None:
            expires_at = (today + timedelta(days=args.days)).strftime(DATE_FORMAT)

        record = LicenseRecord(
            license_type=config.license_type,
            issuer=config.issuer,
            subject=config.subject,
            audience=config.audience,
            features=config.features,
            restrictions=config.restrictions,
            metadata=config.metadata,
            issued_at=args.issued_at or today.strftime(DATE_FORMAT),
            expires_at=expires_at,
            plans=config.plans,
        )
        if not record.expires_at:
            logger.warning("No expires_at set; verifiers will reject this license")
        logger.info(
            "Issuing %r license for %r, expires %s",
            record.license_type,
            record.subject,
            record.expires_at,
        )
        token = issue_token(record, priv)
    except LicenseError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
