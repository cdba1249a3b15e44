"""Tests for the address registry — proves lookups fail loudly and writes stop after Deploy."""

import json

import pytest

from propkit.addresses import Addresses, AddressRecord
from propkit.encoding.abi import ZERO_ADDRESS, make_address
from propkit.errors import AddressesFrozen, ConfigurationError, UnknownAddress


TIMELOCK = make_address("timelock")
MULTISIG = make_address("multisig")


def _make_registry() -> Addresses:
    addresses = Addresses(chain_id=1)
    addresses.register("TIMELOCK", TIMELOCK, is_contract=True)
    addresses.register("MULTISIG", MULTISIG, is_contract=False)
    addresses.register("TIMELOCK", make_address("remote timelock"), is_contract=True, chain_id=10)
    return addresses


class TestLookup:
    def test_resolve_default_chain(self) -> None:
        assert _make_registry().resolve("TIMELOCK") == TIMELOCK

    def test_resolve_other_chain(self) -> None:
        assert _make_registry().resolve("TIMELOCK", 10) == make_address("remote timelock")

    def test_unknown_name(self) -> None:
        with pytest.raises(UnknownAddress) as exc_info:
            _make_registry().resolve("VAULT")
        assert exc_info.value.name == "VAULT"
        assert exc_info.value.chain_id == 1

    def test_unknown_on_other_chain(self) -> None:
        with pytest.raises(UnknownAddress):
            _make_registry().resolve("MULTISIG", 10)

    def test_is_set_and_is_contract(self) -> None:
        addresses = _make_registry()
        assert addresses.is_set("MULTISIG")
        assert not addresses.is_set("VAULT")
        assert addresses.is_contract("TIMELOCK")
        assert not addresses.is_contract("MULTISIG")

    def test_ref_accepts_literal_or_name(self) -> None:
        addresses = _make_registry()
        assert addresses.ref("TIMELOCK") == TIMELOCK
        assert addresses.ref(MULTISIG.lower()) == MULTISIG

    def test_name_of(self) -> None:
        addresses = _make_registry()
        assert addresses.name_of(TIMELOCK) == "TIMELOCK"
        assert addresses.name_of(make_address("nobody")) is None


class TestWrites:
    def test_duplicate_register_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            _make_registry().register("TIMELOCK", TIMELOCK, is_contract=True)

    def test_zero_address_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            Addresses().register("ZERO", ZERO_ADDRESS, is_contract=False)

    def test_malformed_address_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            Addresses().register("BAD", "0xnothex", is_contract=False)

    def test_change_tracks_old_and_new(self) -> None:
        addresses = _make_registry()
        new = make_address("new timelock")
        addresses.change("TIMELOCK", new, is_contract=True)
        assert addresses.resolve("TIMELOCK") == new
        ((old_record, new_record),) = addresses.changed()
        assert old_record.address == TIMELOCK
        assert new_record.address == new

    def test_change_unknown_rejected(self) -> None:
        with pytest.raises(UnknownAddress):
            Addresses().change("VAULT", TIMELOCK, is_contract=True)

    def test_frozen_rejects_writes(self) -> None:
        addresses = _make_registry()
        addresses.freeze()
        with pytest.raises(AddressesFrozen):
            addresses.register("VAULT", make_address("vault"), is_contract=True)
        with pytest.raises(AddressesFrozen):
            addresses.change("TIMELOCK", make_address("other"), is_contract=True)
        assert addresses.resolve("TIMELOCK") == TIMELOCK

    def test_recorded_lists_new_entries(self) -> None:
        assert [r.name for r in _make_registry().recorded()] == ["TIMELOCK", "MULTISIG", "TIMELOCK"]


class TestPersistence:
    def test_save_and_load(self, tmp_path) -> None:
        path = tmp_path / "addresses.json"
        _make_registry().save(path)
        loaded = Addresses.from_json(path, chain_id=1)
        assert loaded.resolve("TIMELOCK") == TIMELOCK
        assert loaded.resolve("TIMELOCK", 10) == make_address("remote timelock")
        assert not loaded.is_contract("MULTISIG")
        assert loaded.recorded() == []

    def test_file_format(self, tmp_path) -> None:
        path = tmp_path / "addresses.json"
        _make_registry().save(path)
        raw = json.loads(path.read_text(encoding="utf-8"))
        assert {"addr": MULTISIG, "name": "MULTISIG", "chainId": 1, "isContract": False} in raw

    def test_missing_file_gives_empty_registry(self, tmp_path) -> None:
        assert len(Addresses.from_json(tmp_path / "none.json")) == 0

    def test_duplicate_entries_in_file_rejected(self, tmp_path) -> None:
        path = tmp_path / "addresses.json"
        record = AddressRecord("X", TIMELOCK, 1, True).to_json()
        path.write_text(json.dumps([record, record]), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Addresses.from_json(path)

    def test_not_a_list_rejected(self, tmp_path) -> None:
        path = tmp_path / "addresses.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Addresses.from_json(path)
