"""
Hexa Connect - Secret-gated wallets for authenticated users.

Command-line entry point. Runs the wallet lifecycle against the local
storage file, with a local auth event source standing in for the
identity provider.
"""

import argparse
import getpass
import json
import logging
import sys

from hexa_connect.settings import load_settings
from hexa_connect.services.backup import MODE_ENCRYPTED, MODE_PLAIN
from hexa_connect.services.connect import HexaConnect
from hexa_connect.services.logging import configure_logging
from hexa_connect.services.providers import LocalAuthProvider, Web3WalletConnector
from hexa_connect.wallet.errors import WalletError


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="hexa-connect",
        description="Secret-gated wallet lifecycle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hexa-connect signin alice                      # create or restore alice's wallet
  hexa-connect signin alice --backup encrypted   # ... and export an encrypted backup
  hexa-connect import-backup alice backup.txt    # restore a backup on this device
  hexa-connect signin guest --anonymous --rpc-url http://127.0.0.1:8545
        """
    )
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    parser.add_argument("--chain-id", type=int, default=None, help="Chain to use")
    sub = parser.add_subparsers(dest="command", required=True)

    signin = sub.add_parser("signin", help="Sign in and materialize the wallet")
    signin.add_argument("uid", help="Identity to sign in as")
    signin.add_argument("--anonymous", action="store_true",
                        help="Connect an external wallet instead")
    signin.add_argument("--rpc-url", default=None,
                        help="Web3 endpoint of the external wallet (with --anonymous)")
    signin.add_argument("--backup", choices=[MODE_PLAIN, MODE_ENCRYPTED], default=None,
                        help="Export a backup once the wallet is ready")

    importer = sub.add_parser("import-backup", help="Import a backup file for an identity")
    importer.add_argument("uid")
    importer.add_argument("file")
    importer.add_argument("--plain", action="store_true", help="File holds an unencrypted key")
    importer.add_argument("--overwrite", action="store_true", help="Replace a stored key")

    status = sub.add_parser("status", help="Show whether a key is stored for an identity")
    status.add_argument("uid")

    return parser.parse_args(argv)


def _prompt_secret() -> str:
    secret = getpass.getpass("Secret: ")
    if not secret:
        raise SystemExit("A secret is required.")
    return secret


def main(argv=None) -> int:
    """Application entry point."""
    args = parse_args(argv)
    settings = load_settings()
    if args.chain_id is not None:
        settings.chain_id = args.chain_id

    # Configure logging before anything else
    level = logging.DEBUG if args.debug else getattr(logging, settings.log_level)
    configure_logging(level, settings.log_retention_days)

    auth = LocalAuthProvider()
    connector = None
    if getattr(args, "rpc_url", None):
        from web3 import Web3
        connector = Web3WalletConnector(Web3.HTTPProvider(args.rpc_url), settings.chain_id)

    hexa = HexaConnect(auth=auth, settings=settings, connector=connector)

    try:
        if args.command == "status":
            stored = hexa.is_existing_private_key_stored(args.uid)
            print(json.dumps({"uid": args.uid, "privateKeyStored": stored}))
            return 0

        if args.command == "import-backup":
            wallet = hexa.import_backup(
                args.uid, args.file, _prompt_secret(),
                encrypted=not args.plain, overwrite=args.overwrite,
            )
            print(json.dumps(wallet.user_info(), indent=2))
            return 0

        # signin
        if args.anonymous and not settings.external_wallet_enabled:
            print("Error: external wallet sign-in is disabled in settings", file=sys.stderr)
            return 1
        if not args.anonymous:
            hexa.set_secret(_prompt_secret())
            if args.backup and not hexa.is_existing_private_key_stored(args.uid):
                hexa.request_backup(with_encryption=(args.backup == MODE_ENCRYPTED))

        errors = []
        results = []
        hexa.on_connect_state_changed(results.append, on_error=errors.append)
        auth.sign_in(args.uid, is_anonymous=args.anonymous)
        hexa.wait_idle()

        if errors:
            print(f"Error: {errors[0]}", file=sys.stderr)
            return 1
        print(json.dumps(results[0] if results else None, indent=2))
        return 0
    except (WalletError, FileExistsError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        hexa.close()


if __name__ == "__main__":
    sys.exit(main())
