#!/usr/bin/env python3
"""
avs-operator Command Line Interface

Usage:
    avs-operator register
    avs-operator address
    avs-operator sign-digest --digest <hex>

Configuration is read from environment variables (see OperatorConfig).
"""

import argparse
import json
import os
import sys

from .config import LOG_LEVELS
from .errors import ConfigurationError

EXIT_CONFIG_ERROR = 2


def _private_key_from_env() -> str:
    key = os.environ.get("PRIVATE_KEY", "").strip()
    if not key:
        raise ConfigurationError(["PRIVATE_KEY is not set"])
    return key


def cmd_register(args):
    """Register the configured operator with the AVS."""
    from .config import OperatorConfig
    from .logging_config import configure_logging
    from .registration import register_operator

    config = OperatorConfig.from_env()
    configure_logging(
        level=args.log_level or config.log_level,
        json_format=args.json_logs or config.log_json,
    )

    result = register_operator(config)

    print(json.dumps(result.to_dict(), indent=2))
    if result.core_registration_skipped:
        print(f"\n! Core registration skipped: {result.core_registration_error}", file=sys.stderr)
    print(f"\n✓ Operator {result.operator} registered", file=sys.stderr)
    return 0


def cmd_address(args):
    """Print the operator address derived from PRIVATE_KEY."""
    from .signing import OperatorIdentity

    identity = OperatorIdentity.from_private_key(_private_key_from_env())
    print(identity.address)
    return 0


def cmd_sign_digest(args):
    """Sign a 32-byte digest with PRIVATE_KEY."""
    from .signing import OperatorIdentity

    identity = OperatorIdentity.from_private_key(_private_key_from_env())
    try:
        signature = identity.sign_digest(args.digest)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps({"signer": identity.address, **signature.to_dict()}, indent=2))
    else:
        print(signature.to_hex())
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="avs-operator",
        description="Register an operator with an AVS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  avs-operator register                    Run the full registration
  avs-operator address                     Show the operator address
  avs-operator sign-digest -d 0xabc...     Sign a registration digest
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # register
    register_parser = subparsers.add_parser("register", help="Register operator with the AVS")
    register_parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, help="Override LOG_LEVEL"
    )
    register_parser.add_argument("--json-logs", action="store_true", help="Structured JSON logs")

    # address
    subparsers.add_parser("address", help="Print operator address")

    # sign-digest
    sign_parser = subparsers.add_parser("sign-digest", help="Sign a 32-byte digest")
    sign_parser.add_argument("-d", "--digest", required=True, help="Digest as hex")
    sign_parser.add_argument("--json", action="store_true", help="Print r, s, v as JSON")

    args = parser.parse_args(argv)

    commands = {
        "register": cmd_register,
        "address": cmd_address,
        "sign-digest": cmd_sign_digest,
    }
    if args.command not in commands:
        parser.print_help()
        return 1

    try:
        return commands[args.command](args)
    except ConfigurationError as e:
        print(f"✗ {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
