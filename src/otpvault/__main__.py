"""otpvault CLI.

Usage:
    python -m otpvault keygen                                  # New OTPVAULT_ENCRYPTION_KEY
    python -m otpvault provision --label alice --issuer ACME   # Issue secret + URI + stored blob
    python -m otpvault code --secret JBSWY3DPEHPK3PXP          # Current code
    python -m otpvault verify --secret ... --code 123456       # Exit 0 if valid
    python -m otpvault watch --secret work=ABC...:60           # Live per-account refresh
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from otpvault import base32, totp
from otpvault.config import settings
from otpvault.errors import MissingEncryptionKey, OtpVaultError
from otpvault.models import Algorithm, TotpConfig

logger = logging.getLogger("otpvault")


def _config_from_args(args: argparse.Namespace) -> TotpConfig:
    return TotpConfig(
        digits=args.digits if args.digits is not None else settings.default_digits,
        period=args.period if args.period is not None else settings.default_period,
        algorithm=args.algorithm or settings.default_algorithm,
    )


def cmd_keygen(args: argparse.Namespace) -> None:
    """Print a fresh encryption key."""
    from otpvault.vault import generate_key

    print("Add this to your .env:")
    print()
    print(f"OTPVAULT_ENCRYPTION_KEY={generate_key()}")
    print()
    print("Keep this key safe: every stored secret depends on it.")


def cmd_provision(args: argparse.Namespace) -> None:
    """Issue a new secret and print its storage form."""
    from otpvault.service import AuthenticatorService
    from otpvault.vault import load_vault

    service = AuthenticatorService(load_vault())
    provisioned, stored = service.enroll(
        args.label, args.issuer, _config_from_args(args), render_qr=not args.no_qr,
    )
    print(f"Secret:  {provisioned.secret}")
    print(f"URI:     {provisioned.uri}")
    print(f"Stored:  {stored}")
    if provisioned.qr_image:
        print(f"QR:      {provisioned.qr_image[:48]}... ({len(provisioned.qr_image)} chars)")


def cmd_code(args: argparse.Namespace) -> None:
    """Print the current code for a Base32 secret."""
    config = _config_from_args(args)
    state = totp.code_snapshot(base32.decode(args.secret), config)
    print(f"{state.current_code}  ({state.seconds_remaining}s remaining)")


def cmd_verify(args: argparse.Namespace) -> None:
    """Verify a code; exit status 0 when valid, 1 otherwise."""
    window = args.window if args.window is not None else settings.verify_window
    ok = totp.verify(args.code, base32.decode(args.secret), _config_from_args(args), window=window)
    print("valid" if ok else "invalid")
    sys.exit(0 if ok else 1)


def _parse_watch_spec(spec: str, default: TotpConfig, index: int) -> tuple[str, bytes, TotpConfig]:
    label, sep, rest = spec.partition("=")
    if not sep:
        label, rest = f"account-{index}", spec
    secret, _, period = rest.partition(":")
    config = TotpConfig(
        digits=default.digits,
        period=int(period) if period else default.period,
        algorithm=default.algorithm,
    )
    return label, base32.decode(secret), config


def cmd_watch(args: argparse.Namespace) -> None:
    """Show codes as each account's own period rolls over."""
    from otpvault.scheduler import RefreshScheduler

    default = _config_from_args(args)
    sched = RefreshScheduler()
    for i, spec in enumerate(args.secret, 1):
        label, secret, config = _parse_watch_spec(spec, default, i)
        sched.track(label, secret, config)

    def show(updates):
        for s in updates:
            print(f"  {s.account_id:<20} {s.current_code}  (next in {s.seconds_remaining:>3}s, period {s.period}s)")

    sched.start(show)
    print("Watching codes. Press Ctrl+C to stop.")
    try:
        while sched.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping...")
        sched.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="otpvault",
        description="otpvault: TOTP codes, provisioning and secret encryption",
    )
    sub = parser.add_subparsers(dest="command", help="Command to run")

    def add_policy_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--digits", type=int)
        p.add_argument("--period", type=int)
        p.add_argument("--algorithm", choices=[a.value for a in Algorithm], type=str.upper)

    # keygen
    sub.add_parser("keygen", help="Generate an encryption key")

    # provision
    p_prov = sub.add_parser("provision", help="Issue a new secret")
    p_prov.add_argument("--label", required=True)
    p_prov.add_argument("--issuer", default=None)
    p_prov.add_argument("--no-qr", action="store_true")
    add_policy_args(p_prov)

    # code
    p_code = sub.add_parser("code", help="Show the current code")
    p_code.add_argument("--secret", required=True)
    add_policy_args(p_code)

    # verify
    p_ver = sub.add_parser("verify", help="Verify a code")
    p_ver.add_argument("--secret", required=True)
    p_ver.add_argument("--code", required=True)
    p_ver.add_argument("--window", type=int)
    add_policy_args(p_ver)

    # watch
    p_watch = sub.add_parser("watch", help="Live code refresh per account")
    p_watch.add_argument("--secret", action="append", required=True,
                         help="label=SECRET[:period], repeatable")
    add_policy_args(p_watch)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    dispatch = {
        "keygen": cmd_keygen,
        "provision": cmd_provision,
        "code": cmd_code,
        "verify": cmd_verify,
        "watch": cmd_watch,
    }
    try:
        dispatch[args.command](args)
    except MissingEncryptionKey as e:
        logger.critical("%s", e)
        print(f"Fatal: {e}. Run `otpvault keygen` and set it in the environment.", file=sys.stderr)
        sys.exit(1)
    except (OtpVaultError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
