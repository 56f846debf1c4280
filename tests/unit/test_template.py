"""Tests for delegated_session.contract.template."""
from __future__ import annotations

import pytest

from delegated_session.contract.template import (
    PROGRAM_MAGIC,
    ContractImage,
    OwnerKeySet,
    derive_address,
    instantiate,
)
from delegated_session.crypto.encoding import decode_address, encode_address
from delegated_session.errors import (
    MalformedProgramError,
    TemplateError,
    TemplateOversizeError,
)

O1 = b"\x11" * 32
O2 = b"\x22" * 32
O3 = b"\x33" * 32


class TestOwnerKeySet:
    def test_primary_is_first_key(self) -> None:
        assert OwnerKeySet.of(O1, O2).primary == O1

    def test_membership(self) -> None:
        owners = OwnerKeySet.of(O1, O2)
        assert O2 in owners
        assert O3 not in owners

    def test_serialize_concatenates_in_order(self) -> None:
        assert OwnerKeySet.of(O1, O2).serialize() == O1 + O2

    def test_empty_set_rejected(self) -> None:
        with pytest.raises(TemplateError, match="at least one"):
            OwnerKeySet(())

    def test_wrong_key_length_rejected(self) -> None:
        with pytest.raises(TemplateError, match="32 bytes"):
            OwnerKeySet.of(b"\x01" * 31)

    def test_duplicates_rejected(self) -> None:
        with pytest.raises(TemplateError, match="duplicate"):
            OwnerKeySet.of(O1, O1)

    def test_from_hex(self) -> None:
        assert OwnerKeySet.from_hex([O1.hex(), O2.hex()]) == OwnerKeySet.of(O1, O2)

    def test_from_hex_invalid(self) -> None:
        with pytest.raises(TemplateError, match="hex"):
            OwnerKeySet.from_hex(["zz"])

    def test_from_addresses(self) -> None:
        owners = OwnerKeySet.from_addresses([encode_address(O1)])
        assert owners.keys == (O1,)

    def test_iteration_and_length(self) -> None:
        owners = OwnerKeySet.of(O1, O2)
        assert list(owners) == [O1, O2]
        assert len(owners) == 2


class TestInstantiate:
    def test_deterministic(self) -> None:
        first = instantiate(OwnerKeySet.of(O1), "site-a.example")
        second = instantiate(OwnerKeySet.of(O1), "site-a.example")
        assert first.program == second.program
        assert first.address == second.address

    def test_accepts_raw_key_iterable(self) -> None:
        assert instantiate([O1], "a") == instantiate(OwnerKeySet.of(O1), "a")

    def test_program_layout(self) -> None:
        program = instantiate(OwnerKeySet.of(O1), "abc").program
        assert program == PROGRAM_MAGIC + bytes([1, 32]) + O1 + bytes([3]) + b"abc"

    def test_origin_changes_address(self) -> None:
        a = instantiate(OwnerKeySet.of(O1), "site-a.example")
        b = instantiate(OwnerKeySet.of(O1), "site-b.example")
        assert a.address != b.address

    def test_owners_change_address(self) -> None:
        a = instantiate(OwnerKeySet.of(O1), "site-a.example")
        b = instantiate(OwnerKeySet.of(O2), "site-a.example")
        assert a.address != b.address

    def test_owner_order_changes_address(self) -> None:
        a = instantiate(OwnerKeySet.of(O1, O2), "site-a.example")
        b = instantiate(OwnerKeySet.of(O2, O1), "site-a.example")
        assert a.address != b.address

    def test_address_is_not_an_owner_key(self) -> None:
        image = instantiate(OwnerKeySet.of(O1), "site-a.example")
        assert decode_address(image.address) != O1

    def test_derive_address_matches_property(self) -> None:
        image = instantiate(OwnerKeySet.of(O1), "site-a.example")
        assert derive_address(image) == image.address

    def test_two_owners_fit(self) -> None:
        image = instantiate(OwnerKeySet.of(O1, O2), "site-a.example")
        assert len(image.owners) == 2

    def test_three_owners_oversize(self) -> None:
        with pytest.raises(TemplateOversizeError) as excinfo:
            instantiate(OwnerKeySet.of(O1, O2, O3), "site-a.example")
        assert excinfo.value.field == "owners"
        assert excinfo.value.size == 96
        assert excinfo.value.limit == 64

    def test_origin_at_limit(self) -> None:
        image = instantiate(OwnerKeySet.of(O1), "a" * 64)
        assert image.origin == "a" * 64

    def test_origin_over_limit(self) -> None:
        with pytest.raises(TemplateOversizeError) as excinfo:
            instantiate(OwnerKeySet.of(O1), "a" * 65)
        assert excinfo.value.field == "origin"

    def test_origin_limit_counts_utf8_bytes(self) -> None:
        instantiate(OwnerKeySet.of(O1), "é" * 32)
        with pytest.raises(TemplateOversizeError):
            instantiate(OwnerKeySet.of(O1), "é" * 33)

    def test_empty_origin_rejected(self) -> None:
        with pytest.raises(TemplateError):
            instantiate(OwnerKeySet.of(O1), "")

    def test_oversize_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            instantiate(OwnerKeySet.of(O1), "a" * 100)


class TestContractImageFromProgram:
    def test_parses_program_back(self) -> None:
        image = instantiate(OwnerKeySet.of(O1, O2), "site-a.example")
        assert ContractImage.from_program(image.program) == image

    def test_bad_magic(self) -> None:
        with pytest.raises(MalformedProgramError, match="magic"):
            ContractImage.from_program(b"XXXXX\x01")

    def test_unsupported_version(self) -> None:
        program = instantiate(OwnerKeySet.of(O1), "a").program
        tampered = PROGRAM_MAGIC + b"\x02" + program[len(PROGRAM_MAGIC) + 1 :]
        with pytest.raises(MalformedProgramError, match="version"):
            ContractImage.from_program(tampered)

    def test_truncated(self) -> None:
        program = instantiate(OwnerKeySet.of(O1), "abc").program
        with pytest.raises(MalformedProgramError, match="truncated"):
            ContractImage.from_program(program[:-1])

    def test_trailing_bytes(self) -> None:
        program = instantiate(OwnerKeySet.of(O1), "abc").program
        with pytest.raises(MalformedProgramError, match="trailing"):
            ContractImage.from_program(program + b"\x00")

    def test_owner_section_not_key_multiple(self) -> None:
        program = PROGRAM_MAGIC + bytes([1, 3]) + b"abc" + bytes([1]) + b"a"
        with pytest.raises(MalformedProgramError, match="owner section"):
            ContractImage.from_program(program)

    def test_oversize_owner_section(self) -> None:
        owners = O1 + O2 + O3
        program = PROGRAM_MAGIC + bytes([1, 96]) + owners + bytes([1]) + b"a"
        with pytest.raises(MalformedProgramError):
            ContractImage.from_program(program)

    def test_to_dict(self) -> None:
        image = instantiate(OwnerKeySet.of(O1), "site-a.example")
        data = image.to_dict()
        assert data["owners"] == [O1.hex()]
        assert data["origin"] == "site-a.example"
        assert data["address"] == image.address
        assert data["program"] == image.program.hex()
