"""
Test support: a manual clock and Storable domain types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pantry.warehouse import Warehouse


@dataclass
class Address:
    street: str
    city: str

    @classmethod
    def from_warehouse(cls, warehouse: Warehouse) -> Address:
        return cls(
            street=warehouse.require("street", str),
            city=warehouse.require("city", str),
        )

    def to_storage(self) -> dict[str, Any]:
        return {"street": self.street, "city": self.city}


@dataclass
class Person:
    name: str
    age: int
    nicknames: list[str] = field(default_factory=list)
    address: Address | None = None
    previous_addresses: list[Address] = field(default_factory=list)

    @classmethod
    def from_warehouse(cls, warehouse: Warehouse) -> Person | None:
        name = warehouse.get("name", str)
        age = warehouse.get("age", int)
        if name is None or age is None:
            return None
        return cls(
            name=name,
            age=age,
            nicknames=warehouse.get_list("nicknames", str) or [],
            address=warehouse.get("address", Address),
            previous_addresses=warehouse.get_list("previous_addresses", Address) or [],
        )

    def to_storage(self) -> dict[str, Any]:
        storage: dict[str, Any] = {
            "name": self.name,
            "age": self.age,
            "nicknames": self.nicknames,
            "previous_addresses": self.previous_addresses,
        }
        if self.address is not None:
            storage["address"] = self.address
        return storage


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
