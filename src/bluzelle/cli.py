"""
Command-line interface for the Bluzelle client.

Provides commands for querying a database and sending simple transactions.
"""

import argparse
import asyncio
import json
import sys

import structlog

from bluzelle import __version__
from bluzelle.client import Bluzelle
from bluzelle.config import BluzelleConfig, set_config
from bluzelle.core.operation import GasInfo, LeaseInfo, TransactionValidationError
from bluzelle.node.interface import NodeConnectionError, ResponseDecodeError, ServerError
from bluzelle.tx.keys import create_mnemonic
from bluzelle.tx.signer import TransactionSigner


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    import logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def _connection_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--endpoint",
        help="REST server URL (default: BLUZELLE_ENDPOINT or http://localhost:1317)",
    )
    parent.add_argument(
        "--mnemonic",
        help="Account mnemonic (default: BLUZELLE_MNEMONIC)",
    )
    parent.add_argument(
        "--uuid",
        help="Database uuid (default: the account address)",
    )
    parent.add_argument(
        "--chain-id",
        help="Chain id (default: bluzelle)",
    )
    parent.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parent.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )
    return parent


def _gas_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--max-gas",
        type=int,
        default=0,
        help="Gas limit (default: 200000)",
    )
    parent.add_argument(
        "--max-fee",
        type=int,
        default=0,
        help="Fixed fee; overrides --gas-price when set",
    )
    parent.add_argument(
        "--gas-price",
        type=int,
        default=10,
        help="Price per unit of gas (default: 10)",
    )
    return parent


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bluzelle",
        description="Client for the Bluzelle CRUD ledger",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    connection = _connection_options()
    gas = _gas_options()

    subparsers.add_parser("version", parents=[connection], help="Show the node's application version")
    subparsers.add_parser("account", parents=[connection], help="Show the account's number, sequence and coins")
    subparsers.add_parser("count", parents=[connection], help="Count the keys in the database")
    subparsers.add_parser("keys", parents=[connection], help="List the keys in the database")
    subparsers.add_parser("keyvalues", parents=[connection], help="List the keys and values in the database")

    read_parser = subparsers.add_parser("read", parents=[connection], help="Read a value")
    read_parser.add_argument("key", help="Key to read")
    read_parser.add_argument(
        "--prove",
        action="store_true",
        help="Require a proof of the value",
    )

    has_parser = subparsers.add_parser("has", parents=[connection], help="Check whether a key exists")
    has_parser.add_argument("key", help="Key to check")

    lease_parser = subparsers.add_parser("lease", parents=[connection], help="Show the seconds left on a lease")
    lease_parser.add_argument("key", help="Key to inspect")

    create_parser_ = subparsers.add_parser("create", parents=[connection, gas], help="Create a key")
    create_parser_.add_argument("key", help="Key to create")
    create_parser_.add_argument("value", help="Value to store")
    create_parser_.add_argument(
        "--lease-days",
        type=int,
        default=0,
        help="Lease length in days (default: chain default)",
    )

    update_parser = subparsers.add_parser("update", parents=[connection, gas], help="Update a key")
    update_parser.add_argument("key", help="Key to update")
    update_parser.add_argument("value", help="New value")

    delete_parser = subparsers.add_parser("delete", parents=[connection, gas], help="Delete a key")
    delete_parser.add_argument("key", help="Key to delete")

    mnemonic_parser = subparsers.add_parser("mnemonic", help="Generate a new account mnemonic")
    mnemonic_parser.add_argument(
        "--strength",
        type=int,
        choices=[128, 160, 192, 224, 256],
        default=256,
        help="Entropy bits (default: 256)",
    )

    return parser


def _client(args: argparse.Namespace) -> Bluzelle:
    config = BluzelleConfig(log_level=args.log_level, log_json=args.log_json)
    set_config(config)
    return Bluzelle.from_mnemonic(
        mnemonic=args.mnemonic,
        endpoint=args.endpoint,
        uuid=args.uuid,
        chain_id=args.chain_id,
        config=config,
    )


def _gas_info(args: argparse.Namespace) -> GasInfo:
    return GasInfo(max_gas=args.max_gas, max_fee=args.max_fee, gas_price=args.gas_price)


def _print_result(result) -> None:
    print(f"Transaction: {result.tx_hash}")
    print(f"  Height: {result.height}")
    print(f"  Gas used: {result.gas_used}")


async def run_command(args: argparse.Namespace) -> None:
    """Run a command against the configured node."""
    async with _client(args) as bz:
        if args.command == "version":
            print(await bz.version())

        elif args.command == "account":
            account = await bz.account()
            print(f"Address: {bz.address}")
            print(f"  Account number: {account.account_number}")
            print(f"  Sequence: {account.sequence}")
            for denom, amount in sorted(account.coins.items()):
                print(f"  Balance: {amount} {denom}")

        elif args.command == "count":
            print(await bz.count())

        elif args.command == "keys":
            for key in await bz.keys():
                print(key)

        elif args.command == "keyvalues":
            print(json.dumps(await bz.key_values(), indent=2, sort_keys=True))

        elif args.command == "read":
            print(await bz.read(args.key, prove=args.prove))

        elif args.command == "has":
            print("true" if await bz.has(args.key) else "false")

        elif args.command == "lease":
            print(await bz.get_lease(args.key))

        elif args.command == "create":
            lease = LeaseInfo(days=args.lease_days) if args.lease_days else None
            _print_result(await bz.create(args.key, args.value, _gas_info(args), lease))

        elif args.command == "update":
            _print_result(await bz.update(args.key, args.value, _gas_info(args)))

        elif args.command == "delete":
            _print_result(await bz.delete(args.key, _gas_info(args)))


def generate_mnemonic(args: argparse.Namespace) -> None:
    """Print a new mnemonic and the address it controls."""
    mnemonic = create_mnemonic(args.strength)
    signer = TransactionSigner.from_mnemonic(mnemonic, BluzelleConfig())

    print(f"Mnemonic: {mnemonic}")
    print(f"Address:  {signer.address}")
    print()
    print("Store the mnemonic securely; it controls the account's funds.")


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Setup logging
    log_level = getattr(args, "log_level", "WARNING")
    log_json = getattr(args, "log_json", False)
    setup_logging(log_level, log_json)

    if args.command == "mnemonic":
        generate_mnemonic(args)
        return

    try:
        asyncio.run(run_command(args))
    except (
        TransactionValidationError,
        ServerError,
        NodeConnectionError,
        ResponseDecodeError,
        ValueError,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
