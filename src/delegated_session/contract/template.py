"""Contract template instantiation.

Binds an owner key set and an origin string into a fixed authorization
program image. The image bytes are a pure function of the two parameters::

    b"DSESS" | version | len(owners) | owners | len(origin) | origin

where ``owners`` is the concatenation of the raw 32-byte owner public keys
and ``origin`` is UTF-8. The contract account address is the address
encoding of ``sha256(b"Program" + image)``.

Instantiation reads no clock and no randomness, so two processes given the
same owners and origin always derive the same image and address.
"""
from __future__ import annotations

import hashlib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from delegated_session.crypto.encoding import decode_address, encode_address
from delegated_session.crypto.key_manager import PUBLIC_KEY_LENGTH
from delegated_session.errors import (
    MalformedProgramError,
    TemplateError,
    TemplateOversizeError,
)
from delegated_session.transaction.note import MAX_ORIGIN_BYTES, origin_bytes

MAX_OWNER_BYTES: int = 64
PROGRAM_MAGIC: bytes = b"DSESS"
PROGRAM_VERSION: int = 1
_PROGRAM_DOMAIN: bytes = b"Program"


# ---------------------------------------------------------------------------
# OwnerKeySet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OwnerKeySet:
    """Ordered, duplicate-free set of owner public keys.

    The first key is the primary owner; any further keys are recovery keys.
    Size limits are enforced at instantiation, not here, so that an
    oversize set can still be constructed and reported precisely.

    Parameters
    ----------
    keys:
        Raw 32-byte Ed25519 public keys, in order.
    """

    keys: tuple[bytes, ...]

    def __post_init__(self) -> None:
        if not self.keys:
            raise TemplateError("owner key set must contain at least one key")
        for key in self.keys:
            if len(key) != PUBLIC_KEY_LENGTH:
                raise TemplateError(
                    f"owner keys are {PUBLIC_KEY_LENGTH} bytes, got {len(key)}"
                )
        if len(set(self.keys)) != len(self.keys):
            raise TemplateError("owner key set contains duplicate keys")

    @classmethod
    def of(cls, *keys: bytes) -> "OwnerKeySet":
        return cls(tuple(bytes(k) for k in keys))

    @classmethod
    def from_hex(cls, hex_keys: Iterable[str]) -> "OwnerKeySet":
        """Build a key set from hex-encoded public keys."""
        try:
            keys = tuple(bytes.fromhex(k) for k in hex_keys)
        except ValueError as exc:
            raise TemplateError(f"owner key is not valid hex: {exc}") from exc
        return cls(keys)

    @classmethod
    def from_addresses(cls, addresses: Iterable[str]) -> "OwnerKeySet":
        """Build a key set from public keys in address form."""
        return cls(tuple(decode_address(a) for a in addresses))

    @property
    def primary(self) -> bytes:
        return self.keys[0]

    def serialize(self) -> bytes:
        """Concatenate the raw keys in order."""
        return b"".join(self.keys)

    def to_hex(self) -> list[str]:
        return [k.hex() for k in self.keys]

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.keys)

    def __len__(self) -> int:
        return len(self.keys)


# ---------------------------------------------------------------------------
# ContractImage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractImage:
    """An instantiated authorization program.

    Use :func:`instantiate` rather than constructing this directly.

    Parameters
    ----------
    owners:
        The bound owner key set.
    origin:
        The bound origin string.
    program:
        The program image bytes.
    """

    owners: OwnerKeySet
    origin: str
    program: bytes

    @property
    def address(self) -> str:
        """The contract account address (see :func:`derive_address`)."""
        return derive_address(self)

    @classmethod
    def from_program(cls, program: bytes) -> "ContractImage":
        """Parse program bytes back into a contract image.

        Raises
        ------
        MalformedProgramError
            If the bytes are not a program produced by :func:`instantiate`.
        """
        if not program.startswith(PROGRAM_MAGIC):
            raise MalformedProgramError("program does not start with the template magic")
        offset = len(PROGRAM_MAGIC)
        try:
            version = program[offset]
            offset += 1
            if version != PROGRAM_VERSION:
                raise MalformedProgramError(f"unsupported program version {version}")
            owners_len = program[offset]
            offset += 1
            owners_blob = program[offset : offset + owners_len]
            offset += owners_len
            origin_len = program[offset]
            offset += 1
        except IndexError as exc:
            raise MalformedProgramError("program is truncated") from exc
        origin_raw = program[offset : offset + origin_len]
        offset += origin_len
        if len(owners_blob) != owners_len or len(origin_raw) != origin_len:
            raise MalformedProgramError("program is truncated")
        if offset != len(program):
            raise MalformedProgramError("program has trailing bytes")
        if owners_len == 0 or owners_len % PUBLIC_KEY_LENGTH:
            raise MalformedProgramError(f"owner section length {owners_len} is invalid")
        try:
            origin = origin_raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedProgramError("origin is not valid UTF-8") from exc
        keys = tuple(
            owners_blob[i : i + PUBLIC_KEY_LENGTH]
            for i in range(0, owners_len, PUBLIC_KEY_LENGTH)
        )
        try:
            image = instantiate(OwnerKeySet(keys), origin)
        except TemplateError as exc:
            raise MalformedProgramError(str(exc)) from exc
        return image

    def to_dict(self) -> dict[str, object]:
        return {
            "owners": self.owners.to_hex(),
            "origin": self.origin,
            "program": self.program.hex(),
            "address": self.address,
        }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def instantiate(owners: OwnerKeySet | Iterable[bytes], origin: str) -> ContractImage:
    """Bind *owners* and *origin* into a contract image.

    Parameters
    ----------
    owners:
        The owner key set, or an iterable of raw public keys.
    origin:
        The origin string (UTF-8 encoding at most 64 bytes).

    Returns
    -------
    ContractImage

    Raises
    ------
    TemplateOversizeError
        If the serialized owners or the origin exceed 64 bytes.
    TemplateError
        If the owner set or origin is otherwise invalid.
    """
    if not isinstance(owners, OwnerKeySet):
        owners = OwnerKeySet(tuple(bytes(k) for k in owners))
    owners_blob = owners.serialize()
    if len(owners_blob) > MAX_OWNER_BYTES:
        raise TemplateOversizeError("owners", len(owners_blob), MAX_OWNER_BYTES)
    encoded_origin = origin_bytes(origin)
    program = b"".join(
        [
            PROGRAM_MAGIC,
            bytes([PROGRAM_VERSION, len(owners_blob)]),
            owners_blob,
            bytes([len(encoded_origin)]),
            encoded_origin,
        ]
    )
    return ContractImage(owners=owners, origin=origin, program=program)


def derive_address(image: ContractImage) -> str:
    """Return the contract account address for *image*."""
    return encode_address(hashlib.sha256(_PROGRAM_DOMAIN + image.program).digest())


__all__ = [
    "ContractImage",
    "MAX_ORIGIN_BYTES",
    "MAX_OWNER_BYTES",
    "OwnerKeySet",
    "derive_address",
    "instantiate",
]
