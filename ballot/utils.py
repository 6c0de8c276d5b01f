import re
from typing import Union

from Crypto.Hash import keccak  # type: ignore

from ballot.exceptions import InvalidAddress, InvalidProposalName

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

NAME_SIZE = 32

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def keccak256(x: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=x).digest()


# Converts bytes to an integer
def bytes_to_int(bytez):
    o = 0
    for b in bytez:
        o = o * 256 + b
    return o


def is_address(addr) -> bool:
    return isinstance(addr, str) and _ADDRESS_RE.match(addr) is not None


# Encodes an address using ethereum's checksum scheme
def checksum_encode(addr):  # Expects an input of the form 0x<40 hex chars>
    assert addr[:2] == "0x" and len(addr) == 42, addr
    o = ""
    v = bytes_to_int(keccak256(addr[2:].lower().encode("utf-8")))
    for i, c in enumerate(addr[2:]):
        if c in "0123456789":
            o += c
        else:
            o += c.upper() if (v & (2 ** (255 - 4 * i))) else c.lower()
    return "0x" + o


def to_address(addr) -> str:
    """
    Validate an address and return its checksummed form.

    Any casing is accepted on input, so that one account always maps to a
    single voter record.
    """
    if not is_address(addr):
        raise InvalidAddress(
            f"Invalid address: {addr!r}", hint="expected 0x followed by 40 hex digits"
        )
    return checksum_encode(addr)


def crop_address(addr: str) -> str:
    return f"{addr[:6]}...{addr[-4:]}"


def string_to_bytes32(name: Union[str, bytes]) -> bytes:
    """
    Encode a proposal name as a right-padded 32 byte value.

    ``str`` names are utf-8 encoded first.
    """
    if isinstance(name, str):
        bytez = name.encode("utf-8")
    elif isinstance(name, (bytes, bytearray)):
        bytez = bytes(name)
    else:
        raise InvalidProposalName(f"Proposal name must be str or bytes, got {type(name).__name__}")

    if len(bytez) > NAME_SIZE:
        raise InvalidProposalName(
            f"Proposal name is {len(bytez)} bytes long, maximum is {NAME_SIZE}", repr(name)
        )
    return bytez.ljust(NAME_SIZE, b"\x00")


def bytes32_to_string(bytez: bytes) -> str:
    # names shorter than 32 bytes are NUL padded on the right
    return bytez.rstrip(b"\x00").decode("utf-8", errors="replace")
