from concurrent.futures import ThreadPoolExecutor

from ballot import Ballot
from ballot.exceptions import AlreadyHasRights
from ballot.utils import checksum_encode, keccak256

N_VOTERS = 200


def _account(i):
    return checksum_encode("0x" + keccak256(b"voter" + i.to_bytes(4, "big")).hex()[-40:])


def test_concurrent_votes_are_all_counted():
    chair = _account(0)
    voters = [_account(i) for i in range(1, N_VOTERS + 1)]
    b = Ballot(["A", "B"], chair)

    def grant_and_vote(i):
        b.give_right_to_vote(chair, voters[i])
        b.vote(voters[i], i % 2)

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(grant_and_vote, range(N_VOTERS)))

    assert b.voter_count == N_VOTERS
    assert [p.vote_count for p in b.proposals] == [N_VOTERS // 2, N_VOTERS // 2]


def test_concurrent_grants_succeed_once():
    chair = _account(0)
    voter = _account(1)
    b = Ballot(["A", "B"], chair)

    def grant(_):
        try:
            b.give_right_to_vote(chair, voter)
            return True
        except AlreadyHasRights:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(grant, range(32)))

    assert results.count(True) == 1
    assert b.voter(voter).weight == 1
    assert b.voter_count == 1
