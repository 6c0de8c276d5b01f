class _BaseBallotException(Exception):
    """
    Base ballot exception class.

    This exception is not raised directly. Other exceptions inherit it in
    order to share message and hint formatting.
    """

    def __init__(self, message="Error Message not found.", *items, hint=None):
        """
        Exception initializer.

        Arguments
        ---------
        message : str
            Error message to display with the exception.
        *items : str | Tuple[str, Any], optional
            Addresses or proposal indices involved in the failure, or tuples
            of (description, value). They are listed after the message in the
            order given.
        hint : str | Callable, optional
            Extra advice for the caller. May be a callable, in which case it is
            only evaluated when the message is rendered.
        """
        self._message = message
        self._hint = hint
        # strip out None items so that optional context can be passed as-is
        self.annotations = [k for k in items if k is not None]

    @property
    def tag(self) -> str:
        return type(self).__name__

    @property
    def hint(self):
        if callable(self._hint):
            return self._hint()
        return self._hint

    @property
    def message(self):
        msg = self._message
        if self.hint:
            msg += f"\n\n  (hint: {self.hint})"
        return msg

    @staticmethod
    def format_annotation(value):
        if isinstance(value, tuple):
            return f"  {value[0]}: {value[1]}"
        return f"  {value}"

    def __str__(self):
        if not self.annotations:
            return self.message

        annotation_msg = "\n".join(self.format_annotation(v) for v in self.annotations)
        return f"{self.message}\n\n{annotation_msg}"


class BallotException(_BaseBallotException):
    pass


class Unauthorized(BallotException):
    """Caller lacks the privilege required by the operation."""


class AlreadyVoted(BallotException):
    """Voter has already voted, either directly or by delegating."""


class AlreadyHasRights(BallotException):
    """Target of a rights grant already has a nonzero weight."""


class InvalidDelegate(BallotException):
    """Delegation target is the caller itself or the zero address."""


class SelfDelegationCycle(BallotException):
    """Delegation chain resolves back to the delegating voter."""


class OutOfRange(BallotException):
    """Proposal index outside of the ballot's proposals."""


class InvalidAddress(BallotException):
    """Value is not a 20 byte hex address."""


class InvalidProposalName(BallotException):
    """Proposal name is missing or does not fit in 32 bytes."""


class SnapshotException(BallotException):
    """Snapshot data cannot be decoded into a ballot."""


class VersionException(SnapshotException):
    """Snapshot was written by an incompatible version of this package."""


class BallotInternalException(_BaseBallotException):
    """
    Base ballot internal exception class.

    This exception is not raised directly, it is subclassed by other internal
    exceptions.

    Internal exceptions signal that the ballot state violates one of its own
    invariants, which is always a bug.
    """

    def __str__(self):
        return (
            f"{super().__str__()}\n\n"
            "This is an unhandled internal ballot error. "
            "Please open an issue to notify the developers!"
        )


class BallotPanic(BallotInternalException):
    """General unexpected state inside the ballot."""
