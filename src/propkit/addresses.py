"""Address registry — symbolic name → address lookup per chain.

The registry is read by every component but mutated only during the
Deploy phase. After ``freeze()`` any mutation raises AddressesFrozen.

Persistence format (a JSON list, one record per name and chain):

    [{"addr": "0x...", "name": "DEV_MULTISIG", "chainId": 1, "isContract": false}]
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from eth_utils import is_address

from propkit.encoding.abi import ZERO_ADDRESS, normalize_address
from propkit.errors import AddressesFrozen, ConfigurationError, UnknownAddress


@dataclass(frozen=True)
class AddressRecord:
    """One registry entry."""
    name: str
    address: str
    chain_id: int
    is_contract: bool

    def to_json(self) -> dict:
        return {
            "addr": self.address,
            "name": self.name,
            "chainId": self.chain_id,
            "isContract": self.is_contract,
        }


class Addresses:
    """Name → address registry keyed by (name, chain_id).

    Usage:
        addresses = Addresses.from_json(Path("addresses.json"), chain_id=1)
        timelock = addresses.resolve("PROTOCOL_TIMELOCK")
        if not addresses.is_set("VAULT"):
            addresses.register("VAULT", vault_address, is_contract=True)
        addresses.freeze()
    """

    def __init__(self, chain_id: int = 1, records: Optional[list[AddressRecord]] = None) -> None:
        self.chain_id = chain_id
        self._records: dict[tuple[str, int], AddressRecord] = {}
        self._recorded: list[AddressRecord] = []
        self._changed: list[tuple[AddressRecord, AddressRecord]] = []
        self._frozen = False
        for record in records or []:
            key = (record.name, record.chain_id)
            if key in self._records:
                raise ConfigurationError(
                    f"Duplicate address entry: {record.name} (chain {record.chain_id})"
                )
            self._records[key] = record

    @classmethod
    def from_json(cls, path: Path, chain_id: int = 1) -> "Addresses":
        """Load a registry file. A missing file yields an empty registry."""
        if not path.exists():
            return cls(chain_id=chain_id)
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ConfigurationError(f"{path}: expected a JSON list of address records")
        records = []
        for entry in raw:
            try:
                records.append(
                    AddressRecord(
                        name=entry["name"],
                        address=_checked_address(entry["name"], entry["addr"]),
                        chain_id=int(entry["chainId"]),
                        is_contract=bool(entry["isContract"]),
                    )
                )
            except KeyError as exc:
                raise ConfigurationError(f"{path}: address record missing {exc}") from exc
        return cls(chain_id=chain_id, records=records)

    def save(self, path: Path) -> None:
        """Write every entry, loaded and newly registered, sorted by chain then name."""
        entries = sorted(self._records.values(), key=lambda r: (r.chain_id, r.name))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps([r.to_json() for r in entries], indent=2) + "\n",
            encoding="utf-8",
        )

    # ------------------------------------------------------------------ #
    # Reads                                                               #
    # ------------------------------------------------------------------ #

    def resolve(self, name: str, chain_id: Optional[int] = None) -> str:
        chain_id = self.chain_id if chain_id is None else chain_id
        record = self._records.get((name, chain_id))
        if record is None:
            raise UnknownAddress(name, chain_id)
        return record.address

    def is_set(self, name: str, chain_id: Optional[int] = None) -> bool:
        chain_id = self.chain_id if chain_id is None else chain_id
        return (name, chain_id) in self._records

    def is_contract(self, name: str, chain_id: Optional[int] = None) -> bool:
        chain_id = self.chain_id if chain_id is None else chain_id
        record = self._records.get((name, chain_id))
        if record is None:
            raise UnknownAddress(name, chain_id)
        return record.is_contract

    def ref(self, value: str, chain_id: Optional[int] = None) -> str:
        """Resolve a literal address or a symbolic name to an address."""
        if is_address(value):
            return normalize_address(value)
        return self.resolve(value, chain_id)

    def name_of(self, address: str, chain_id: Optional[int] = None) -> Optional[str]:
        """Reverse lookup for reporting. Returns None when unregistered."""
        chain_id = self.chain_id if chain_id is None else chain_id
        address = normalize_address(address)
        for record in self._records.values():
            if record.chain_id == chain_id and record.address == address:
                return record.name
        return None

    def entries(self, chain_id: Optional[int] = None) -> list[AddressRecord]:
        """Every entry, or only those on ``chain_id``."""
        return [
            r for r in self._records.values() if chain_id is None or r.chain_id == chain_id
        ]

    def recorded(self) -> list[AddressRecord]:
        return list(self._recorded)

    def changed(self) -> list[tuple[AddressRecord, AddressRecord]]:
        """(old, new) pairs for entries changed in this run."""
        return list(self._changed)

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------ #
    # Writes (Deploy phase only)                                          #
    # ------------------------------------------------------------------ #

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(
        self,
        name: str,
        address: str,
        is_contract: bool,
        chain_id: Optional[int] = None,
    ) -> AddressRecord:
        self._check_writable(name)
        chain_id = self.chain_id if chain_id is None else chain_id
        if (name, chain_id) in self._records:
            raise ConfigurationError(f"Address already set: {name} (chain {chain_id})")
        record = AddressRecord(
            name=name,
            address=_checked_address(name, address),
            chain_id=chain_id,
            is_contract=is_contract,
        )
        self._records[(name, chain_id)] = record
        self._recorded.append(record)
        return record

    def change(
        self,
        name: str,
        address: str,
        is_contract: bool,
        chain_id: Optional[int] = None,
    ) -> AddressRecord:
        self._check_writable(name)
        chain_id = self.chain_id if chain_id is None else chain_id
        old = self._records.get((name, chain_id))
        if old is None:
            raise UnknownAddress(name, chain_id)
        new = AddressRecord(
            name=name,
            address=_checked_address(name, address),
            chain_id=chain_id,
            is_contract=is_contract,
        )
        if new == old:
            raise ConfigurationError(f"Address unchanged: {name} (chain {chain_id})")
        self._records[(name, chain_id)] = new
        self._changed.append((old, new))
        return new

    def _check_writable(self, name: str) -> None:
        if self._frozen:
            raise AddressesFrozen(
                f"Cannot modify {name!r}: address registry is read-only after Deploy"
            )
        if not name:
            raise ConfigurationError("Address name cannot be empty")


def _checked_address(name: str, value: str) -> str:
    try:
        address = normalize_address(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name}: {exc}") from exc
    if address == ZERO_ADDRESS:
        raise ConfigurationError(f"{name}: cannot register the zero address")
    return address
