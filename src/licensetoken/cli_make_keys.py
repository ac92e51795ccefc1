import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .crypto import generate_keypair


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI command to generate a new RSA keypair for license signing.

    Writes both keys to PEM files:
      - license_signing_private.pem: PKCS#1 RSA PRIVATE KEY (keep secret, vendor-only)
      - license_signing_public.pem: PKIX PUBLIC KEY (safe to distribute)

    Both files are written to the output directory (default: current directory).
    Creates the output directory if it doesn't exist.

    Prints the paths of both generated files to stdout.

    Command-line arguments:
        --out-dir: Output directory for the PEM files (default: '.')
        --bits: RSA modulus size (default: 2048)
    """
    ap = argparse.ArgumentParser(prog="licensetoken-make-keys")
    ap.add_argument(
        "--out-dir",
        default=".",
        help="Output directory for license_signing_private.pem and license_signing_public.pem",
    )
    ap.add_argument("--bits", type=int, default=2048, choices=[2048, 3072, 4096])
    args = ap.parse_args(argv)

    out_dir = Path(args.out_dir).expanduser().resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    kp = generate_keypair(key_size=args.bits)

    priv_path = out_dir / "license_signing_private.pem"
    pub_path = out_dir / "license_signing_public.pem"

    priv_path.write_bytes(kp.private_pem)
    priv_path.chmod(0o600)
    pub_path.write_bytes(kp.public_pem)

    print(str(priv_path))
    print(str(pub_path))
    return 0


if __name__ == "__main__":
    sys.exit(main())
