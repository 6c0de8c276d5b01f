"""
Voting with delegation.

A `Ballot` holds an ordered, fixed list of proposals and a mapping from
addresses to voter records. The chairperson grants voters the right to vote;
voters then either vote for a proposal or delegate their weight to another
voter. Every mutating call is atomic: it validates all of its preconditions
and stages its writes before applying any of them, and returns a `Receipt`
listing the fields it changed.
"""
import functools
import threading
from dataclasses import replace
from typing import Iterable, Optional, Union

from ballot.exceptions import (
    AlreadyHasRights,
    AlreadyVoted,
    BallotPanic,
    InvalidDelegate,
    InvalidProposalName,
    OutOfRange,
    SelfDelegationCycle,
    Unauthorized,
)
from ballot.settings import Settings
from ballot.state import EMPTY_VOTER, Change, Proposal, Receipt, Voter
from ballot.utils import ZERO_ADDRESS, bytes32_to_string, string_to_bytes32, to_address
from ballot.warnings import DelegateWithoutRights, ballot_warn


def _serialized(fn):
    # one operation at a time per ballot instance
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return fn(self, *args, **kwargs)

    return wrapper


class _StagedWrites:
    """
    Pending writes of a single operation.

    Reads see the staged values first and fall back to the ballot's committed
    state. Nothing reaches the ballot until `commit()`.
    """

    def __init__(self, ballot: "Ballot"):
        self._ballot = ballot
        self._voters: dict[str, Voter] = {}
        self._vote_counts: dict[int, int] = {}
        self._changes: list[Change] = []

    def voter(self, addr: str) -> Voter:
        if addr in self._voters:
            return self._voters[addr]
        return self._ballot._get_voter(addr)

    def update_voter(self, addr: str, **fields) -> None:
        old = self.voter(addr)
        new = replace(old, **fields)
        for name, value in fields.items():
            prev = getattr(old, name)
            if prev != value:
                self._changes.append(Change("voter", addr, name, prev, value))
        self._voters[addr] = new

    def add_votes(self, index: int, amount: int) -> None:
        prev = self._vote_counts.get(index, self._ballot._proposals[index].vote_count)
        self._vote_counts[index] = prev + amount
        self._changes.append(Change("proposal", index, "vote_count", prev, prev + amount))

    def commit(self) -> tuple:
        ballot = self._ballot
        ballot._voters.update(self._voters)
        for index, count in self._vote_counts.items():
            ballot._proposals[index] = replace(ballot._proposals[index], vote_count=count)
        return tuple(self._changes)


class Ballot:
    def __init__(
        self,
        proposal_names: Iterable[Union[str, bytes]],
        chairperson: str,
        settings: Optional[Settings] = None,
    ):
        names = [string_to_bytes32(name) for name in proposal_names]
        if len(names) == 0:
            raise InvalidProposalName("A ballot needs at least one proposal")

        self._lock = threading.RLock()
        self.settings = settings if settings is not None else Settings()

        self._chairperson = to_address(chairperson)
        self._proposals: list[Proposal] = [Proposal(name=name) for name in names]
        self._voters: dict[str, Voter] = {self._chairperson: Voter(weight=1)}
        self._voter_count = 0

    @classmethod
    def from_records(
        cls,
        chairperson: str,
        proposals: Iterable[Proposal],
        voters: dict,
        voter_count: int = 0,
        settings: Optional[Settings] = None,
    ) -> "Ballot":
        """
        Rebuild a ballot from previously exported state.

        No transition rules are checked here, the records are trusted to
        come from a ballot that was driven through its public operations.
        """
        proposals = list(proposals)
        ret = cls([p.name for p in proposals], chairperson, settings=settings)
        # keep the padded names built by the constructor
        ret._proposals = [
            replace(p, vote_count=q.vote_count) for p, q in zip(ret._proposals, proposals)
        ]
        ret._voters = {to_address(addr): voter for addr, voter in voters.items()}
        ret._voter_count = voter_count
        return ret

    def __repr__(self):
        names = ", ".join(repr(p.text) for p in self._proposals)
        return f"Ballot(proposals=[{names}], chairperson={self._chairperson!r})"

    # explicit zero-value record for addresses that were never written
    def _get_voter(self, addr: str) -> Voter:
        return self._voters.get(addr, EMPTY_VOTER)

    #
    # read queries
    #

    @property
    def chairperson(self) -> str:
        return self._chairperson

    @property
    def num_proposals(self) -> int:
        return len(self._proposals)

    @property
    def voter_count(self) -> int:
        # number of successful rights grants
        return self._voter_count

    @property
    @_serialized
    def proposals(self) -> tuple:
        return tuple(self._proposals)

    @_serialized
    def proposal(self, index: int) -> Proposal:
        self._check_proposal_index(index)
        return self._proposals[index]

    @_serialized
    def voter(self, addr: str) -> Voter:
        return self._get_voter(to_address(addr))

    @_serialized
    def voters(self) -> dict:
        return dict(self._voters)

    def delegated(self, addr: str) -> bool:
        return self.voter(addr).delegate is not None

    def directly_voted(self, addr: str) -> bool:
        voter = self.voter(addr)
        return voter.voted and voter.delegate is None

    # Computes the winning proposal taking all
    # previous votes into account.
    @_serialized
    def winning_proposal(self) -> int:
        winning_vote_count = 0
        winning_proposal = 0
        for i, proposal in enumerate(self._proposals):
            if proposal.vote_count > winning_vote_count:
                winning_vote_count = proposal.vote_count
                winning_proposal = i
        return winning_proposal

    @_serialized
    def winner_name(self) -> bytes:
        return self._proposals[self.winning_proposal()].name

    @_serialized
    def results(self) -> list:
        return [(bytes32_to_string(p.name), p.vote_count) for p in self._proposals]

    @_serialized
    def unspent_weight(self) -> int:
        """
        Weight that can still be cast: the weights of all voters that have
        neither voted nor delegated.

        Together with the proposal tallies this only ever grows through
        rights grants; votes and delegations move weight around.
        """
        return sum(v.weight for v in self._voters.values() if not v.voted)

    #
    # mutating operations
    #

    # Give a `voter` the right to vote on this ballot.
    # This may only be called by the `chairperson`.
    @_serialized
    def give_right_to_vote(self, caller: str, voter: str) -> Receipt:
        caller = to_address(caller)
        voter = to_address(voter)

        if caller != self._chairperson:
            raise Unauthorized("Only chairperson can give right to vote.", ("caller", caller))
        target = self._get_voter(voter)
        if target.voted:
            raise AlreadyVoted("The voter already voted.", ("voter", voter))
        if target.weight != 0:
            raise AlreadyHasRights("Voter already has the right to vote.", ("voter", voter))

        staged = _StagedWrites(self)
        staged.update_voter(voter, weight=1)
        changes = staged.commit()
        self._voter_count += 1
        return Receipt("give_right_to_vote", caller, changes)

    # Delegate your vote to the voter `to`.
    @_serialized
    def delegate(self, caller: str, to: str) -> Receipt:
        caller = to_address(caller)
        to = to_address(to)

        if to == caller:
            raise InvalidDelegate("Self-delegation is disallowed.", ("caller", caller))
        if to == ZERO_ADDRESS:
            raise InvalidDelegate("Delegation to the zero address is disallowed.")
        sender = self._get_voter(caller)
        if sender.voted:
            raise AlreadyVoted("You already voted.", ("caller", caller))
        if sender.weight == 0:
            raise Unauthorized("You have no right to vote", ("caller", caller))

        to = self._resolve_delegate(caller, to)
        delegate_ = self._get_voter(to)

        without_rights = delegate_.weight == 0
        if without_rights and self.settings.get_strict_delegation():
            raise Unauthorized(
                "Voters cannot delegate to accounts that cannot vote", ("delegate", to)
            )

        staged = _StagedWrites(self)
        staged.update_voter(caller, voted=True, delegate=to)
        if delegate_.voted:
            # If the delegate already voted,
            # directly add to the number of votes
            staged.add_votes(delegate_.vote, sender.weight)
        else:
            # If the delegate did not vote yet,
            # add to her weight.
            staged.update_voter(to, weight=delegate_.weight + sender.weight)
        changes = staged.commit()

        if without_rights:
            ballot_warn(
                DelegateWithoutRights(
                    "Delegated to a voter without the right to vote", ("delegate", to)
                )
            )
        return Receipt("delegate", caller, changes)

    def _resolve_delegate(self, caller: str, to: str) -> str:
        # Forward the delegation as long as `to` also delegated.
        # A chain can not be longer than the number of voters on record,
        # so the walk is bounded even if the records are corrupted.
        for _ in range(len(self._voters) + 1):
            next_ = self._get_voter(to).delegate
            if next_ is None:
                return to
            to = next_
            # We found a loop in the delegation, not allowed.
            if to == caller:
                raise SelfDelegationCycle("Found loop in delegation.", ("caller", caller))
        raise BallotPanic(
            "Delegation chain is longer than the number of voters", ("caller", caller), ("to", to)
        )

    # Give your vote (including votes delegated to you)
    # to proposal `proposals[proposal].name`.
    @_serialized
    def vote(self, caller: str, proposal: int) -> Receipt:
        caller = to_address(caller)

        sender = self._get_voter(caller)
        if sender.weight == 0:
            raise Unauthorized("Has no right to vote", ("caller", caller))
        if sender.voted:
            raise AlreadyVoted("Already voted.", ("caller", caller))
        # can only vote on legitimate proposals
        self._check_proposal_index(proposal)

        staged = _StagedWrites(self)
        staged.update_voter(caller, voted=True, vote=proposal)
        staged.add_votes(proposal, sender.weight)
        return Receipt("vote", caller, staged.commit())

    def _check_proposal_index(self, index) -> None:
        # bool is an int subclass, but never a meaningful index
        if isinstance(index, bool) or not isinstance(index, int):
            raise OutOfRange(f"Proposal index must be an integer, got {index!r}")
        if not 0 <= index < len(self._proposals):
            raise OutOfRange(
                f"Proposal index {index} out of range",
                hint=f"valid indices are 0 to {len(self._proposals) - 1}",
            )
