#!/usr/bin/env python3
import argparse
import json
import os
import sys
import warnings
from pathlib import Path
from typing import Optional

import ballot
from ballot import snapshot
from ballot.ballot import Ballot
from ballot.settings import (
    BALLOT_TRACEBACK_LIMIT,
    WARNINGS_CONTROL_OPTIONS,
    Settings,
    merge_settings,
)
from ballot.utils import crop_address, to_address
from ballot.warnings import warnings_filter

commands_help = """Command to run, one of:
deploy     - Create a ballot from proposal names, caller becomes chairperson
give-right - Give a voter the right to vote (chairperson only)
vote       - Vote for a proposal by index
delegate   - Delegate your vote to another voter
query      - Print the proposals, their vote counts and the winner
voter      - Print the record of a single voter
"""


def _parse_cli_args():
    return _parse_args(sys.argv[1:])


def _cli_helper(f, output):
    print(json.dumps(output, indent=2), file=f)


def _add_caller(parser):
    parser.add_argument(
        "--from",
        help="Address of the caller (defaults to $BALLOT_FROM)",
        dest="caller",
        default=os.environ.get("BALLOT_FROM"),
    )


def _parse_args(argv):
    warnings.simplefilter("always")

    parser = argparse.ArgumentParser(
        description="Delegated voting ballots stored in snapshot files",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=commands_help,
    )
    parser.add_argument(
        "--version", action="version", version=f"{ballot.__version__}+commit.{ballot.__commit__}"
    )
    parser.add_argument(
        "--strict-delegation",
        help="Reject delegations to voters without the right to vote",
        action="store_true",
        default=None,
    )
    parser.add_argument(
        "--warnings", help="Warnings control", choices=WARNINGS_CONTROL_OPTIONS, default=None
    )
    parser.add_argument(
        "--traceback-limit",
        help="Set the traceback limit for error messages",
        type=int,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        help="Turn on verbose output. Currently an alias for --traceback-limit",
        action="store_true",
    )
    parser.add_argument("-o", help="Set the output path", dest="output_path")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("deploy", help="Create a new ballot")
    p.add_argument("proposals", help="Proposal names, at most 32 bytes each", nargs="+")
    p.add_argument("-s", "--state", help="Snapshot file to create", required=True)
    _add_caller(p)

    p = subparsers.add_parser("give-right", help="Give a voter the right to vote")
    p.add_argument("state", help="Ballot snapshot file")
    p.add_argument("voter", help="Address to give the right to vote to")
    _add_caller(p)

    p = subparsers.add_parser("vote", help="Vote for a proposal")
    p.add_argument("state", help="Ballot snapshot file")
    p.add_argument("proposal", help="Index of the proposal", type=int)
    _add_caller(p)

    p = subparsers.add_parser("delegate", help="Delegate your vote")
    p.add_argument("state", help="Ballot snapshot file")
    p.add_argument("to", help="Address to delegate to")
    _add_caller(p)

    p = subparsers.add_parser("query", help="Show proposals and the winner")
    p.add_argument("state", help="Ballot snapshot file")

    p = subparsers.add_parser("voter", help="Show a voter record")
    p.add_argument("state", help="Ballot snapshot file")
    p.add_argument("address", help="Voter address")

    args = parser.parse_args(argv)

    if args.traceback_limit is not None:
        sys.tracebacklimit = args.traceback_limit
    elif BALLOT_TRACEBACK_LIMIT is not None:
        sys.tracebacklimit = BALLOT_TRACEBACK_LIMIT
    elif args.verbose:
        sys.tracebacklimit = 1000
    else:
        # Python usually defaults sys.tracebacklimit to 1000. We use a default
        # setting of zero so error printouts only show the ballot error.
        sys.tracebacklimit = 0

    cli_settings = Settings(
        strict_delegation=args.strict_delegation, warnings_control=args.warnings
    )
    settings = merge_settings(cli_settings, Settings.from_env())

    if args.verbose:
        print(f"cli specified: `{settings}`", file=sys.stderr)

    if getattr(args, "caller", "unused") is None:
        parser.error(f"{args.command}: a caller is required, pass --from or set BALLOT_FROM")

    with warnings_filter(settings.warnings_control):
        output = run_command(args, settings)

    if args.output_path:
        with open(args.output_path, "w") as f:
            _cli_helper(f, output)
    else:
        _cli_helper(sys.stdout, output)


def run_command(args, settings: Settings) -> dict:
    if args.command == "deploy":
        return deploy(args.proposals, args.state, args.caller, settings)
    if args.command == "give-right":
        return give_right_to_vote(args.state, args.caller, args.voter, settings)
    if args.command == "vote":
        return vote(args.state, args.caller, args.proposal, settings)
    if args.command == "delegate":
        return delegate(args.state, args.caller, args.to, settings)
    if args.command == "query":
        return query(args.state, settings)
    if args.command == "voter":
        return voter_info(args.state, args.address, settings)
    raise ValueError(f"unknown command: {args.command}")


def _check_state_path(path) -> Path:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Ballot snapshot not found: {path}")
    return path


def _transact(path, settings: Optional[Settings], fn, *args) -> dict:
    path = _check_state_path(path)
    b = snapshot.load(path, settings=settings)
    receipt = fn(b, *args)
    # only persisted once the operation succeeded
    snapshot.dump(b, path)
    return receipt.as_dict()


def deploy(proposals: list[str], path, caller: str, settings: Optional[Settings] = None) -> dict:
    path = Path(path)
    if path.exists():
        raise FileExistsError(f"Refusing to overwrite existing snapshot: {path}")
    b = Ballot(proposals, caller, settings=settings)
    snapshot.dump(b, path)
    print(f"Ballot created by {crop_address(b.chairperson)} at {path}", file=sys.stderr)
    return _proposals_output(b)


def give_right_to_vote(path, caller: str, voter: str, settings: Optional[Settings] = None) -> dict:
    return _transact(path, settings, Ballot.give_right_to_vote, caller, voter)


def vote(path, caller: str, proposal: int, settings: Optional[Settings] = None) -> dict:
    return _transact(path, settings, Ballot.vote, caller, proposal)


def delegate(path, caller: str, to: str, settings: Optional[Settings] = None) -> dict:
    return _transact(path, settings, Ballot.delegate, caller, to)


def _proposals_output(b: Ballot) -> dict:
    return {
        "chairperson": b.chairperson,
        "proposals": [
            {"index": i, "name": name, "vote_count": count}
            for i, (name, count) in enumerate(b.results())
        ],
    }


def query(path, settings: Optional[Settings] = None) -> dict:
    b = snapshot.load(_check_state_path(path), settings=settings)
    ret = _proposals_output(b)
    ret["winning_proposal"] = b.winning_proposal()
    ret["winner_name"] = b.proposal(ret["winning_proposal"]).text
    return ret


def voter_info(path, address: str, settings: Optional[Settings] = None) -> dict:
    b = snapshot.load(_check_state_path(path), settings=settings)
    v = b.voter(address)
    return {
        "address": to_address(address),
        "weight": v.weight,
        "voted": v.voted,
        "delegate": v.delegate,
        "vote": v.vote,
    }
