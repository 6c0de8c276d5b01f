"""
Binary snapshots of a ballot.

A snapshot is a CBOR encoded map holding everything needed to rebuild a
`Ballot`: the chairperson, the proposals with their tallies, every voter
record, the rights-grant counter and the version of this package that wrote
it. Snapshots are only read back by the same major.minor release series.
"""
from pathlib import Path
from typing import Optional, Union

import cbor2
from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from ballot.ballot import Ballot
from ballot.exceptions import BallotException, SnapshotException, VersionException
from ballot.settings import Settings
from ballot.state import Proposal, Voter
from ballot.utils import to_address
from ballot.version import version_tuple

SNAPSHOT_KEYS = ("chairperson", "proposals", "voters", "voter_count", "ballot")


def _current_version() -> str:
    from ballot import __version__

    return __version__


def validate_snapshot_version(writer_version: str) -> None:
    """
    Check that a snapshot written by `writer_version` can be read by the
    running version of this package.
    """
    try:
        v = Version(writer_version)
        spec = SpecifierSet(f"=={v.major}.{v.minor}.*")
    except (InvalidVersion, InvalidSpecifier):
        raise SnapshotException(f'Snapshot version "{writer_version}" is not a valid version')

    current = _current_version()
    if not spec.contains(current, prereleases=True):
        raise VersionException(
            f'Snapshot version "{writer_version}" is not compatible '
            f'with ballot version "{current}"',
            hint=f"load it with a ballot release matching {spec}",
        )


def to_dict(ballot: Ballot) -> dict:
    return {
        "chairperson": ballot.chairperson,
        "proposals": [[p.name, p.vote_count] for p in ballot.proposals],
        "voters": {addr: list(voter.as_tuple()) for addr, voter in ballot.voters().items()},
        "voter_count": ballot.voter_count,
        "ballot": list(version_tuple),
    }


def _expect(value, types, what: str):
    # bool is an int subclass, never accept it where a number is expected
    if isinstance(value, bool) and bool not in types:
        raise SnapshotException(f"{what} must be {types[0].__name__}, got bool")
    if not isinstance(value, types):
        raise SnapshotException(f"{what} must be {types[0].__name__}, got {type(value).__name__}")
    return value


def _load_proposals(records) -> list:
    _expect(records, (list,), "Snapshot proposals")
    proposals = []
    for name, count in records:
        proposals.append(
            Proposal(
                name=_expect(name, (bytes,), "Proposal name"),
                vote_count=_expect(count, (int,), "Proposal vote count"),
            )
        )
    return proposals


def _load_voters(records, num_proposals: int) -> dict:
    _expect(records, (dict,), "Snapshot voters")
    voters = {}
    for addr, (weight, voted, delegate, vote) in records.items():
        vote = _expect(vote, (int,), f"Vote of {addr}")
        if not 0 <= vote < num_proposals:
            raise SnapshotException(
                f"Vote of {addr} is out of range", f"proposal {vote} of {num_proposals}"
            )
        voters[addr] = Voter(
            weight=_expect(weight, (int,), f"Weight of {addr}"),
            voted=_expect(voted, (bool,), f"Voted flag of {addr}"),
            delegate=None if delegate is None else to_address(delegate),
            vote=vote,
        )
    return voters


def from_dict(data: dict, settings: Optional[Settings] = None) -> Ballot:
    if not isinstance(data, dict):
        raise SnapshotException(f"Snapshot must be a map, got {type(data).__name__}")
    missing = [k for k in SNAPSHOT_KEYS if k not in data]
    if missing:
        raise SnapshotException(f"Snapshot is missing keys: {', '.join(missing)}")

    try:
        writer_version = ".".join(str(i) for i in data["ballot"])
    except TypeError:
        raise SnapshotException(f"Malformed snapshot version: {data['ballot']!r}")
    validate_snapshot_version(writer_version)

    try:
        proposals = _load_proposals(data["proposals"])
        voters = _load_voters(data["voters"], len(proposals))
        return Ballot.from_records(
            data["chairperson"],
            proposals,
            voters,
            voter_count=_expect(data["voter_count"], (int,), "Snapshot voter count"),
            settings=settings,
        )
    except SnapshotException:
        raise
    except BallotException as e:
        raise SnapshotException(f"Snapshot holds invalid ballot data: {e}") from e
    except (TypeError, ValueError) as e:
        raise SnapshotException(f"Malformed snapshot: {e}") from e


def dumps(ballot: Ballot) -> bytes:
    # hold the lock so that the snapshot is a consistent view
    with ballot._lock:
        return cbor2.dumps(to_dict(ballot))


def loads(data: bytes, settings: Optional[Settings] = None) -> Ballot:
    try:
        decoded = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise SnapshotException(f"Snapshot is not valid CBOR: {e}") from e
    return from_dict(decoded, settings=settings)


def dump(ballot: Ballot, path: Union[str, Path]) -> None:
    with open(path, "wb") as f:
        f.write(dumps(ballot))


def load(path: Union[str, Path], settings: Optional[Settings] = None) -> Ballot:
    with open(path, "rb") as f:
        return loads(f.read(), settings=settings)
