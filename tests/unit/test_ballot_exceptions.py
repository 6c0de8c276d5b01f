import warnings

import pytest

from ballot.exceptions import (
    AlreadyVoted,
    BallotException,
    BallotPanic,
    SnapshotException,
    Unauthorized,
    VersionException,
)
from ballot.warnings import BallotWarning, DelegateWithoutRights, ballot_warn, warnings_filter


def test_message_and_annotations():
    e = Unauthorized("Has no right to vote", ("caller", "0xabc"), None)
    assert e.tag == "Unauthorized"
    assert str(e) == "Has no right to vote\n\n  caller: 0xabc"
    assert isinstance(e, BallotException)


def test_lazy_hint():
    calls = []

    def hint():
        calls.append(1)
        return "try again"

    e = AlreadyVoted("Already voted.", hint=hint)
    assert calls == []
    assert str(e) == "Already voted.\n\n  (hint: try again)"
    assert calls == [1]


def test_hierarchy():
    assert issubclass(VersionException, SnapshotException)
    assert not issubclass(BallotPanic, BallotException)
    assert "internal ballot error" in str(BallotPanic("bad chain"))


def test_ballot_warn():
    with pytest.warns(BallotWarning, match="careful"):
        ballot_warn("careful")


def test_warnings_filter_error():
    with warnings_filter("error"):
        with pytest.raises(DelegateWithoutRights):
            ballot_warn(DelegateWithoutRights("no rights"))


def test_warnings_filter_none():
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        with warnings_filter("none"):
            ballot_warn(DelegateWithoutRights("no rights"))
    assert not [w for w in caught if issubclass(w.category, BallotWarning)]
