from contextlib import contextmanager

import hypothesis
import pytest

from ballot import Ballot
from ballot.exceptions import BallotException
from ballot.utils import checksum_encode, keccak256

############
# PATCHING #
############


# disable hypothesis deadline globally
hypothesis.settings.register_profile("ci", deadline=None)
hypothesis.settings.load_profile("ci")


def pytest_configure(config):
    config.addinivalue_line("markers", "fuzzing: hypothesis driven tests")


def make_account(i: int) -> str:
    return checksum_encode("0x" + keccak256(i.to_bytes(32, "big")).hex()[-40:])


ACCOUNTS = [make_account(i) for i in range(10)]

PROPOSALS = ["Proposal 1", "Proposal 2", "Proposal 3"]


@pytest.fixture(scope="session")
def accounts():
    return list(ACCOUNTS)


@pytest.fixture
def get_ballot(accounts):
    def fn(proposal_names=PROPOSALS, chairperson=None, **kwargs):
        return Ballot(proposal_names, chairperson or accounts[0], **kwargs)

    return fn


@pytest.fixture
def b(get_ballot):
    return get_ballot()


@pytest.fixture
def tx_failed():
    @contextmanager
    def fn(exception=BallotException, exc_text=None):
        with pytest.raises(exception) as excinfo:
            yield

        if exc_text:
            assert exc_text in str(excinfo.value), (exc_text, excinfo.value)

    return fn
