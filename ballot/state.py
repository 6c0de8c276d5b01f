from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ballot.utils import bytes32_to_string


@dataclass(frozen=True)
class Proposal:
    # short name, right padded to 32 bytes
    name: bytes
    # number of accumulated votes
    vote_count: int = 0

    @property
    def text(self) -> str:
        return bytes32_to_string(self.name)


@dataclass(frozen=True)
class Voter:
    # weight is accumulated by delegation
    weight: int = 0
    # if true, that person already voted (which includes voting by delegating)
    voted: bool = False
    # person delegated to
    delegate: Optional[str] = None
    # index of the voted proposal, which is not meaningful unless `voted` is True.
    vote: int = 0

    def as_tuple(self):
        return (self.weight, self.voted, self.delegate, self.vote)


# the record returned for addresses that were never referenced
EMPTY_VOTER = Voter()


@dataclass(frozen=True)
class Change:
    kind: str  # "voter" or "proposal"
    key: Union[str, int]
    field: str
    before: Any
    after: Any

    def as_dict(self):
        return {
            "kind": self.kind,
            "key": self.key,
            "field": self.field,
            "before": self.before,
            "after": self.after,
        }


@dataclass(frozen=True)
class Receipt:
    operation: str
    caller: str
    changes: tuple = field(default_factory=tuple)

    def as_dict(self):
        return {
            "operation": self.operation,
            "caller": self.caller,
            "changes": [c.as_dict() for c in self.changes],
        }
