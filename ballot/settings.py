import dataclasses
import os
from dataclasses import dataclass
from typing import Optional

BALLOT_TRACEBACK_LIMIT: Optional[int]

_tb_limit_str = os.environ.get("BALLOT_TRACEBACK_LIMIT")
if _tb_limit_str is not None:
    BALLOT_TRACEBACK_LIMIT = int(_tb_limit_str)
else:
    BALLOT_TRACEBACK_LIMIT = None

WARNINGS_CONTROL_OPTIONS = ("error", "none")

DEFAULT_STRICT_DELEGATION = False


def _env_flag(name: str) -> Optional[bool]:
    val = os.environ.get(name)
    if val is None:
        return None
    return val == "1"


@dataclass
class Settings:
    # require delegation targets to hold voting rights
    strict_delegation: Optional[bool] = None
    # "error", "none", or None for the python default
    warnings_control: Optional[str] = None

    def __post_init__(self):
        # sanity check inputs
        if self.strict_delegation is not None:
            assert isinstance(self.strict_delegation, bool)
        if self.warnings_control is not None:
            if self.warnings_control not in WARNINGS_CONTROL_OPTIONS:
                raise ValueError(f"unrecognized warnings control: {self.warnings_control}")

    def get_strict_delegation(self) -> bool:
        if self.strict_delegation is None:
            return DEFAULT_STRICT_DELEGATION
        return self.strict_delegation

    def as_dict(self):
        ret = dataclasses.asdict(self)
        return {k: v for (k, v) in ret.items() if v is not None}

    @classmethod
    def from_dict(cls, data):
        return cls(**data)

    @classmethod
    def from_env(cls):
        return cls(
            strict_delegation=_env_flag("BALLOT_STRICT_DELEGATION"),
            warnings_control=os.environ.get("BALLOT_WARNINGS") or None,
        )


def merge_settings(
    one: Settings, two: Settings, lhs_source="cli settings", rhs_source="environment"
) -> Settings:
    def _merge_one(lhs, rhs, helpstr):
        if lhs is not None and rhs is not None and lhs != rhs:
            # aesthetics, conjugate the verbs per english rules
            s1 = "" if lhs_source.endswith("s") else "s"
            s2 = "" if rhs_source.endswith("s") else "s"
            raise ValueError(
                f"settings conflict!\n\n  {lhs_source}: {one}\n  {rhs_source}: {two}\n\n"
                f"({lhs_source} indicate{s1} {helpstr} {lhs}, but {rhs_source} indicate{s2} {rhs}.)"
            )
        return lhs if rhs is None else rhs

    ret = Settings()
    for field in dataclasses.fields(ret):
        pretty_name = field.name.replace("_", "-")  # e.g. strict_delegation -> strict-delegation
        val = _merge_one(getattr(one, field.name), getattr(two, field.name), pretty_name)
        setattr(ret, field.name, val)

    return ret
