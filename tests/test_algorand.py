"""
Tests for the Algorand escrow-account helpers and engine wiring

Tests cover:
- Loading accounts from mnemonics
- Funding an account through algod
- Balance reporting
- Building an engine that pays out of the escrow account
"""

from unittest.mock import MagicMock

import pytest
from algosdk import transaction

from milestone_escrow.algorand import (
    AccountBalance,
    account_balance,
    fund_account,
    generate_account,
    load_account,
    to_microalgos,
)
from milestone_escrow.config import EscrowSettings
from milestone_escrow.contract import MilestoneEscrow
from milestone_escrow.transfer import AlgodTransfer


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.suggested_params.return_value = transaction.SuggestedParams(
        fee=1000,
        first=1,
        last=1000,
        gh="SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI=",
        flat_fee=True,
    )
    client.send_transaction.return_value = "FUNDTX"
    return client


class TestAccounts:
    def test_load_account_round_trips_generated_mnemonic(self):
        private_key, address, phrase = generate_account()

        assert load_account(phrase) == (private_key, address)

    @pytest.mark.parametrize("phrase", [None, ""])
    def test_missing_mnemonic(self, phrase):
        with pytest.raises(ValueError, match="mnemonic not set"):
            load_account(phrase)

    def test_to_microalgos(self):
        assert to_microalgos(2.5) == 2_500_000
        assert to_microalgos(0.000001) == 1


class TestFunding:
    def test_fund_account(self, client, monkeypatch):
        # Arrange
        funder_key, funder_address, _ = generate_account()
        _, escrow_address, _ = generate_account()
        monkeypatch.setattr(transaction, "wait_for_confirmation", lambda c, tx_id, rounds: {"confirmed-round": 1})

        # Act
        tx_id = fund_account(client, funder_key, funder_address, escrow_address, 10_000_000)

        # Assert
        assert tx_id == "FUNDTX"
        signed = client.send_transaction.call_args.args[0]
        assert signed.transaction.receiver == escrow_address
        assert signed.transaction.amt == 10_000_000

    def test_fund_account_rejects_zero(self, client):
        funder_key, funder_address, _ = generate_account()

        with pytest.raises(ValueError, match="must be positive"):
            fund_account(client, funder_key, funder_address, funder_address, 0)

        client.send_transaction.assert_not_called()

    def test_account_balance(self, client):
        client.account_info.return_value = {"amount": 5_000_000, "min-balance": 100_000}

        balance = account_balance(client, "ESCROW")

        assert balance == AccountBalance(address="ESCROW", amount=5_000_000, min_balance=100_000)
        assert balance.available == 4_900_000

    def test_available_never_negative(self):
        assert AccountBalance(address="A", amount=50_000, min_balance=100_000).available == 0


class TestEngineFromSettings:
    def test_pays_out_of_escrow_account(self):
        _, address, phrase = generate_account()
        settings = EscrowSettings(escrow_mnemonic=phrase, finalize_restricted_to_creator=False)

        escrow = MilestoneEscrow.from_settings(settings)

        assert isinstance(escrow.transfer, AlgodTransfer)
        assert escrow.transfer.escrow_address == address
        assert escrow.settings.finalize_restricted_to_creator is False

    def test_requires_escrow_mnemonic(self):
        with pytest.raises(ValueError, match="mnemonic not set"):
            MilestoneEscrow.from_settings(EscrowSettings())
