"""propkit CLI — run governance proposals from the command line.

Usage:
    python -m propkit.cli run propkit.examples:TimelockMaintenance
    python -m propkit.cli run my_proposals.fee:RaiseFee --addresses addresses.json --save-addresses
    python -m propkit.cli calldata propkit.examples:GovernorFeeIncrease
    python -m propkit.cli check-onchain my_proposals.fee:RaiseFee --rpc-url https://...

Settings not given on the command line are read from the environment
(and a .env file in the working directory); see propkit.config.
"""

from __future__ import annotations

import argparse
import dataclasses
import importlib
import json
import logging
import sys
from pathlib import Path

from propkit.addresses import Addresses
from propkit.backends.timelock import TimelockBackend
from propkit.config import RunConfig
from propkit.errors import ConfigurationError, ProposalError
from propkit.lifecycle.proposal import Proposal
from propkit.lifecycle.runner import ProposalRunner
from propkit.models.backend import TimelockConfig
from propkit.onchain import is_operation_on_chain
from propkit.sim.contract import Revert


def load_proposal(ref: str) -> Proposal:
    """Instantiate ``package.module:ClassName``."""
    module_name, sep, class_name = ref.partition(":")
    if not sep or not module_name or not class_name:
        raise ConfigurationError(f"Expected MODULE:CLASS, got {ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import {module_name}: {exc}") from exc
    cls = getattr(module, class_name, None)
    if not isinstance(cls, type) or not issubclass(cls, Proposal):
        raise ConfigurationError(f"{ref} is not a Proposal subclass")
    return cls()


def _make_runner(args: argparse.Namespace) -> ProposalRunner:
    config = RunConfig.from_env(Path.cwd())
    overrides = {}
    if args.chain_id is not None:
        overrides["chain_id"] = args.chain_id
    if args.addresses is not None:
        overrides["addresses_path"] = args.addresses
    for phase in ("deploy", "build", "simulate", "validate"):
        if getattr(args, f"skip_{phase}", False):
            overrides[f"do_{phase}"] = False
    if getattr(args, "rpc_url", None):
        overrides["rpc_url"] = args.rpc_url
    config = dataclasses.replace(config, **overrides)

    if config.addresses_path is not None:
        addresses = Addresses.from_json(config.addresses_path, chain_id=config.chain_id)
    else:
        addresses = Addresses(chain_id=config.chain_id)
    return ProposalRunner(load_proposal(args.proposal), addresses, config=config)


def cmd_run(args: argparse.Namespace) -> int:
    runner = _make_runner(args)
    summary = runner.run()
    print(json.dumps(summary, indent=2))
    if args.save_addresses:
        if runner.config.addresses_path is None:
            raise ConfigurationError("--save-addresses needs --addresses or PROPKIT_ADDRESSES")
        runner.addresses.save(runner.config.addresses_path)
        print(f"Saved {len(runner.addresses)} addresses to {runner.config.addresses_path}", file=sys.stderr)
    return 0


def cmd_calldata(args: argparse.Namespace) -> int:
    runner = _make_runner(args)
    runner.deploy()
    runner.build()
    print(json.dumps([c.to_dict() for c in runner.calldata()], indent=2))
    return 0


def cmd_check_onchain(args: argparse.Namespace) -> int:
    runner = _make_runner(args)
    if not isinstance(runner.proposal.backend(), TimelockConfig):
        raise ConfigurationError("check-onchain supports timelock proposals only")
    if not runner.config.rpc_url:
        raise ConfigurationError("Missing --rpc-url (or RPC_URL in .env)")
    runner.deploy()
    runner.build()
    bound = runner.bound_config
    operation_id = TimelockBackend().pair(runner.actions, bound).operation_id
    known = is_operation_on_chain(runner.config.rpc_url, bound.timelock, operation_id)
    print(json.dumps(
        {
            "timelock": bound.timelock,
            "operation_id": "0x" + operation_id.hex(),
            "on_chain": known,
        },
        indent=2,
    ))
    return 0


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("proposal", help="Proposal class as MODULE:CLASS")
    parser.add_argument("--chain-id", type=int, default=None, help="Primary chain id")
    parser.add_argument("--addresses", type=Path, default=None, help="Address registry JSON")
    parser.add_argument("--skip-deploy", action="store_true", help="Skip the deploy hook")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="propkit",
        description="Build, simulate and validate governance proposals",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log phase and step progress")

    sub = parser.add_subparsers(dest="command")

    # run
    p_run = sub.add_parser("run", help="Run a proposal through every phase")
    _add_common(p_run)
    p_run.add_argument("--skip-build", action="store_true", help="Skip the build hook")
    p_run.add_argument("--skip-simulate", action="store_true", help="Skip the backend simulation")
    p_run.add_argument("--skip-validate", action="store_true", help="Skip the validate hook")
    p_run.add_argument("--save-addresses", action="store_true", help="Write the registry back")

    # calldata
    p_calldata = sub.add_parser("calldata", help="Build a proposal and print its calldata")
    _add_common(p_calldata)

    # check-onchain
    p_check = sub.add_parser("check-onchain", help="Ask a live timelock whether the batch exists")
    _add_common(p_check)
    p_check.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "run": cmd_run,
        "calldata": cmd_calldata,
        "check-onchain": cmd_check_onchain,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (ProposalError, Revert) as exc:
        print(f"Failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
