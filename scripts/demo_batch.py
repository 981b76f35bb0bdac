#!/usr/bin/env python3
"""
Run a batched transaction demo against a Bluzelle node.

Demonstrates:
1. Account and node lookups
2. One transaction mixing creates, reads, renames and lease queries
3. Tagged result retrieval
4. Cleanup with a single-operation transaction
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bluzelle.cli import setup_logging
from bluzelle.client import Bluzelle
from bluzelle.config import BluzelleConfig, set_config
from bluzelle.core.operation import GasInfo, LeaseInfo


class DemoRunner:
    """Runs the batch demonstration."""

    def __init__(self, config: BluzelleConfig, output: str = None):
        self.config = config
        self.output = output
        self.gas_info = GasInfo(max_gas=0, max_fee=4_000_001, gas_price=0)
        self.results = {
            "timestamp": datetime.now().isoformat(),
            "endpoint": config.endpoint,
            "chain_id": config.chain_id,
            "transactions": [],
        }

    async def run(self) -> None:
        """Run all demo steps."""
        print("\n" + "=" * 70)
        print("BLUZELLE BATCH CLIENT - DEMO")
        print("=" * 70)

        async with Bluzelle.from_mnemonic(config=self.config) as bz:
            await self.show_account(bz)
            await self.run_batch(bz)
            await self.cleanup(bz)

        if self.output:
            Path(self.output).write_text(json.dumps(self.results, indent=2))
            print(f"\nResults written to {self.output}")

    async def show_account(self, bz: Bluzelle) -> None:
        print("\n[1] Account")
        account = await bz.account()
        print(f"  Node version:   {await bz.version()}")
        print(f"  Address:        {bz.address}")
        print(f"  Database uuid:  {bz.uuid}")
        print(f"  Account number: {account.account_number}")
        print(f"  Sequence:       {account.sequence}")
        print(f"  Balance:        {account.balance(self.config.denom)} {self.config.denom}")

    async def run_batch(self, bz: Bluzelle) -> None:
        print("\n[2] Batched transaction")
        lease = LeaseInfo(minutes=1)
        gas = self.gas_info

        result = await (
            bz.transaction()
            .create("key", "1", gas, lease)
            .create("key1", "12", gas, lease)
            .create("key2", "134", gas, lease)
            .create("key3", "156", gas, lease)
            .read("key2", gas, tag="r0")
            .read("key", gas, tag="r1")
            .delete("key", gas)
            .keys(gas, tag="k")
            .has("key", gas, tag="h0")
            .key_values(gas, tag="v0")
            .rename("key1", "k", gas)
            .renew_lease("k", gas, LeaseInfo(hours=1))
            .count(gas, tag="c0")
            .get_lease("key2", gas, tag="l0")
            .get_n_shortest_leases(3, gas, tag="n0")
            .send()
        )

        print(f"  Tx hash:   {result.tx_hash}")
        print(f"  Height:    {result.height}")
        print(f"  Gas used:  {result.gas_used}")
        print("\n[3] Results")
        print(f"  r0 (read key2):      {result.get_string('r0')}")
        print(f"  r1 (read key):       {result.get_string('r1')}")
        print(f"  k  (keys):           {result.get_keys('k')}")
        print(f"  h0 (has key):        {result.get_bool('h0')}")
        print(f"  v0 (key values):     {result.get_key_values('v0')}")
        print(f"  c0 (count):          {result.get_int('c0')}")
        print(f"  l0 (lease key2, s):  {result.get_int('l0')}")
        print(f"  n0 (shortest, s):    {result.get_leases('n0')}")

        self.results["transactions"].append(result.to_dict())

    async def cleanup(self, bz: Bluzelle) -> None:
        print("\n[4] Cleanup")
        result = await bz.delete_all(self.gas_info)
        print(f"  deleteall committed at height {result.height}")
        self.results["transactions"].append(result.to_dict())


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a Bluzelle batch demo")
    parser.add_argument(
        "--endpoint",
        default=os.environ.get("BLUZELLE_ENDPOINT", "http://localhost:1317"),
        help="REST server URL",
    )
    parser.add_argument(
        "--chain-id",
        default=os.environ.get("BLUZELLE_CHAIN_ID", "bluzelle"),
        help="Chain id",
    )
    parser.add_argument(
        "--uuid",
        default="demo",
        help="Database uuid (default: demo)",
    )
    parser.add_argument(
        "--mnemonic",
        default=os.environ.get("BLUZELLE_MNEMONIC"),
        help="Account mnemonic (default: BLUZELLE_MNEMONIC)",
    )
    parser.add_argument(
        "--output",
        help="Write transaction results to this JSON file",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    args = parser.parse_args()

    if not args.mnemonic:
        print("Error: provide --mnemonic or set BLUZELLE_MNEMONIC")
        sys.exit(1)

    setup_logging(args.log_level)

    config = BluzelleConfig(
        endpoint=args.endpoint,
        chain_id=args.chain_id,
        uuid=args.uuid,
        mnemonic=args.mnemonic,
        log_level=args.log_level,
    )
    set_config(config)

    asyncio.run(DemoRunner(config, args.output).run())


if __name__ == "__main__":
    main()
