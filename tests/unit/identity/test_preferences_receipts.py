"""Tests for name record writes (preferences, invoices) and the receipt log."""

import asyncio
from datetime import UTC, datetime

import pytest

from payroute.chain.encoding import SET_TEXT_SELECTOR
from payroute.errors import UpstreamError
from payroute.identity.preferences import (
    ENS_CHAIN_ID,
    build_set_invoice_transaction,
    build_set_preference_transaction,
    invoice_record_key,
    lookup_resolver,
    read_invoice_record,
)
from payroute.identity.receipts import (
    ReceiptLog,
    build_receipt_text_records,
    generate_receipt_subname,
)
from payroute.models.records import InvoiceRecord
from tests.helpers import ALICE, ENS_RESOLVER, SENDER

TX_HASH = "0xABCDEF0123456789abcdef0123456789ABCDEF0123456789abcdef0123456789"
FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class TestSetPreferenceTransaction:
    def test_multicall_to_resolver_on_mainnet(self):
        tx = build_set_preference_transaction("alice.eth", "USDT", "arbitrum", ENS_RESOLVER)

        assert tx.to == ENS_RESOLVER
        assert tx.chain_id == ENS_CHAIN_ID == 1
        assert tx.value == "0"
        assert tx.provider == "ENS"
        assert tx.data.startswith("0xac9650d8")
        assert "USDT on arbitrum" in (tx.description or "")

    def test_text_values_are_encoded(self):
        tx = build_set_preference_transaction("alice.eth", "USDT", "arbitrum", ENS_RESOLVER)
        assert "USDT".encode().hex() in tx.data
        assert "com.payagent.chain".encode().hex() in tx.data


class TestInvoiceRecords:
    """Invoices stored in and read back from a name's text records."""

    def invoice(self, **overrides):
        values = {"id": "inv-42", "amount": "25", "memo": "March rent", "receiver": ALICE}
        values.update(overrides)
        return InvoiceRecord(**values)

    def test_set_text_on_resolver(self):
        tx = build_set_invoice_transaction("alice.eth", self.invoice(), ENS_RESOLVER)

        assert tx.to == ENS_RESOLVER
        assert tx.chain_id == ENS_CHAIN_ID
        assert tx.provider == "ENS"
        assert tx.data.startswith("0x" + SET_TEXT_SELECTOR.hex())
        assert "flowfi.invoice.inv-42".encode().hex() in tx.data
        assert '"memo":"March rent"'.encode().hex() in tx.data

    def test_record_key(self):
        assert invoice_record_key("abc") == "flowfi.invoice.abc"

    def test_read_back(self, identity_registry):
        value = self.invoice().model_dump_json(by_alias=True, exclude_none=True)
        identity_registry.register(
            "carol.eth", ALICE, texts={"flowfi.invoice.inv-42": value}, resolver=ENS_RESOLVER
        )

        record = asyncio.run(read_invoice_record(identity_registry, "Carol.eth", "inv-42"))

        assert record == self.invoice()

    @pytest.mark.parametrize("stored", [None, "not json", "[1, 2]"])
    def test_missing_or_unreadable_record(self, identity_registry, stored):
        texts = {"flowfi.invoice.inv-42": stored} if stored is not None else {}
        identity_registry.register("carol.eth", ALICE, texts=texts)

        assert asyncio.run(read_invoice_record(identity_registry, "carol.eth", "inv-42")) is None

    def test_lookup_resolver(self, identity_registry):
        assert asyncio.run(lookup_resolver(identity_registry, "ALICE.eth")) == ENS_RESOLVER

        with pytest.raises(UpstreamError, match="No resolver found for bob.eth"):
            asyncio.run(lookup_resolver(identity_registry, "bob.eth"))


class TestReceiptHelpers:
    def test_subname_lowercases_hash(self):
        assert generate_receipt_subname(TX_HASH) == f"tx-{TX_HASH.lower()}.payments.payagent.eth"

    def test_subname_custom_parent(self):
        assert generate_receipt_subname("0xAB", parent="r.eth") == "tx-0xab.r.eth"

    def test_text_records(self):
        records = build_receipt_text_records(
            TX_HASH, "10", "USDC", "base", ALICE, timestamp=FIXED_NOW
        )
        assert records == {
            "com.payagent.tx": TX_HASH,
            "com.payagent.amount": "10",
            "com.payagent.token": "USDC",
            "com.payagent.chain": "base",
            "com.payagent.recipient": ALICE,
            "com.payagent.timestamp": "2026-01-15T12:00:00+00:00",
        }


class TestReceiptLog:
    @pytest.fixture
    def log(self, tmp_path) -> ReceiptLog:
        return ReceiptLog(tmp_path / "data" / "receipts.json", clock=lambda: FIXED_NOW)

    def test_store_then_get_by_any_case(self, log):
        log.store(TX_HASH, "10", "USDC", "base", ALICE, SENDER)

        receipt = log.get(TX_HASH.upper().replace("0X", "0x"))
        assert receipt is not None
        assert receipt.amount == "10"
        assert receipt.created_at == FIXED_NOW
        assert receipt.text_records["com.payagent.chain"] == "base"

    def test_get_missing(self, log):
        assert log.get(TX_HASH) is None

    def test_list_for_recipient(self, log):
        log.store("0x01", "1", "USDC", "base", ALICE, SENDER)
        log.store("0x02", "2", "USDC", "base", ALICE.upper().replace("0X", "0x"), SENDER)
        log.store("0x03", "3", "USDC", "base", SENDER, ALICE)

        amounts = sorted(r.amount for r in log.list_for_recipient(ALICE))
        assert amounts == ["1", "2"]

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "receipts.json"
        path.write_text("{not json", encoding="utf-8")

        assert ReceiptLog(path).get(TX_HASH) is None

    def test_unwritable_store_raises_os_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        log = ReceiptLog(blocker / "receipts.json")

        with pytest.raises(OSError):
            log.store(TX_HASH, "10", "USDC", "base", ALICE, SENDER)
