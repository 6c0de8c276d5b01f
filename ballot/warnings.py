"""
Diagnostics that do not stop a ballot operation.

The ballot warns with `DelegateWithoutRights` when weight is delegated to an
address that was never given the right to vote. The delegation still goes
through unless strict delegation is enabled, in which case it is rejected
with `Unauthorized` instead. Wrap calls in `warnings_filter` (the CLI does this
from `--warnings` or `BALLOT_WARNINGS`) with "error" or "none" to escalate or
silence them.
"""
import contextlib
import warnings
from typing import Optional

from ballot.exceptions import _BaseBallotException


class BallotWarning(_BaseBallotException, Warning):
    pass


# print a warning
def ballot_warn(warning: BallotWarning | str, *items):
    if isinstance(warning, str):
        warning = BallotWarning(warning, *items)
    warnings.warn(warning, stacklevel=2)


@contextlib.contextmanager
def warnings_filter(warnings_control: Optional[str]):
    # note: using warnings.catch_warnings() since it saves and restores
    # the warnings filter
    with warnings.catch_warnings():
        set_warnings_filter(warnings_control)
        yield


def set_warnings_filter(warnings_control: Optional[str]):
    if warnings_control == "error":
        warnings_filter = "error"
    elif warnings_control == "none":
        warnings_filter = "ignore"
    else:
        assert warnings_control is None  # sanity
        warnings_filter = "default"

    if warnings_control is not None:
        # warnings.simplefilter only adds to the warnings filters,
        # so we should clear warnings filter between calls to simplefilter()
        warnings.resetwarnings()

    warnings.simplefilter(warnings_filter, category=BallotWarning)  # type: ignore[arg-type]


class DelegateWithoutRights(BallotWarning):
    """
    Warn when weight is delegated to a voter that was never given the right
    to vote
    """

    pass
