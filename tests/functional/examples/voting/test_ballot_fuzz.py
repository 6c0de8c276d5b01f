import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ballot import Ballot
from ballot.exceptions import BallotException
from ballot.settings import Settings

N_ACCOUNTS = 8

operations = st.lists(
    st.tuples(
        st.sampled_from(["give_right_to_vote", "vote", "delegate"]),
        st.integers(min_value=0, max_value=N_ACCOUNTS - 1),
        # voter / proposal index / delegate, out of range values included
        st.integers(min_value=-1, max_value=N_ACCOUNTS - 1),
    ),
    max_size=40,
)


def _apply(b, accounts, op, caller, arg):
    caller = accounts[caller]
    if op == "vote":
        return b.vote(caller, arg)
    target = accounts[arg % len(accounts)]
    return getattr(b, op)(caller, target)


def _check_invariants(b, accounts):
    tallies = sum(p.vote_count for p in b.proposals)
    # weight is only created by the chairperson's initial weight and by grants
    assert b.unspent_weight() + tallies == 1 + b.voter_count

    voters = b.voters()
    for addr, voter in voters.items():
        assert voter.weight >= 0
        # delegate chains are acyclic and end at a voter that did not delegate
        seen = {addr}
        to = voter.delegate
        while to is not None:
            assert to not in seen
            seen.add(to)
            to = voters[to].delegate if to in voters else None
        if voter.delegate is not None:
            assert voter.voted


@settings(max_examples=200)
@given(ops=operations, strict=st.booleans())
@pytest.mark.fuzzing
@pytest.mark.filterwarnings("ignore::ballot.warnings.DelegateWithoutRights")
def test_random_operations_keep_invariants(accounts, ops, strict):
    accounts = accounts[:N_ACCOUNTS]
    b = Ballot(["A", "B", "C"], accounts[0], settings=Settings(strict_delegation=strict))

    for op, caller, arg in ops:
        before = (b.voters(), b.proposals, b.voter_count)
        voted_before = {a for a, v in before[0].items() if v.voted}
        try:
            _apply(b, accounts, op, caller, arg)
        except BallotException:
            # failures never leave partial writes behind
            assert (b.voters(), b.proposals, b.voter_count) == before
        # voted is never reset
        assert voted_before <= {a for a, v in b.voters().items() if v.voted}
        _check_invariants(b, accounts)


@settings(max_examples=100)
@given(votes=st.lists(st.integers(min_value=0, max_value=3), max_size=9))
@pytest.mark.fuzzing
def test_winning_proposal_is_first_maximum(accounts, votes):
    b = Ballot(["A", "B", "C", "D"], accounts[0])
    voters = accounts[: len(votes)]
    for a in voters[1:]:
        b.give_right_to_vote(accounts[0], a)
    for a, proposal in zip(voters, votes):
        b.vote(a, proposal)

    counts = [0, 0, 0, 0]
    for proposal in votes:
        counts[proposal] += 1
    assert [p.vote_count for p in b.proposals] == counts
    assert b.winning_proposal() == counts.index(max(counts))
    assert b.winner_name() == b.proposal(counts.index(max(counts))).name
