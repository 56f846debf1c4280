"""Contract template instantiation.

Example
-------
::

    from delegated_session.contract import OwnerKeySet, instantiate

    image = instantiate(OwnerKeySet.of(owner_public_key), "game.example")
    print(image.address)
"""
from __future__ import annotations

from delegated_session.contract.template import (
    ContractImage,
    OwnerKeySet,
    derive_address,
    instantiate,
)

__all__ = [
    "ContractImage",
    "OwnerKeySet",
    "derive_address",
    "instantiate",
]
