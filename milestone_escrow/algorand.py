"""
Algorand helpers for the escrow account.

The escrow account is the on-chain wallet that holds contributions until
they are released to a creator or refunded. These helpers load it from a
mnemonic, fund it and report how much of its balance is spendable.
"""

from dataclasses import dataclass
from typing import Optional

from algosdk import account, mnemonic, transaction
from algosdk.v2client import algod

MICROALGOS_PER_ALGO = 1_000_000


@dataclass(frozen=True)
class AccountBalance:
    address: str
    amount: int
    min_balance: int

    @property
    def available(self) -> int:
        return max(self.amount - self.min_balance, 0)


def get_algod_client(server: str, token: str) -> algod.AlgodClient:
    """Create Algorand client for the given node."""
    return algod.AlgodClient(token, server)


def load_account(mnemonic_phrase: Optional[str]) -> tuple[str, str]:
    """
    Load an account from its 25-word mnemonic.

    Args:
        mnemonic_phrase: Account mnemonic

    Returns:
        Tuple of (private_key, address)
    """
    if not mnemonic_phrase:
        raise ValueError("Account mnemonic not set")

    private_key = mnemonic.to_private_key(mnemonic_phrase)
    address = account.address_from_private_key(private_key)
    return private_key, address


def generate_account() -> tuple[str, str, str]:
    """
    Generate a fresh standalone account.

    Returns:
        Tuple of (private_key, address, mnemonic_phrase)
    """
    private_key, address = account.generate_account()
    return private_key, address, mnemonic.from_private_key(private_key)


def fund_account(
    client: algod.AlgodClient,
    funder_key: str,
    funder_address: str,
    receiver: str,
    amount: int,
    note: bytes = b"milestone-escrow-funding",
) -> str:
    """
    Send microALGOs from a funder to `receiver` and wait for confirmation.

    Args:
        client: Algorand client
        funder_key: Private key of funder
        funder_address: Address of funder
        receiver: Address to fund
        amount: Amount in microALGOs

    Returns:
        Transaction ID
    """
    if amount <= 0:
        raise ValueError("Funding amount must be positive")

    params = client.suggested_params()
    txn = transaction.PaymentTxn(
        sender=funder_address,
        sp=params,
        receiver=receiver,
        amt=amount,
        note=note,
    )
    tx_id = client.send_transaction(txn.sign(funder_key))
    transaction.wait_for_confirmation(client, tx_id, 4)
    return tx_id


def account_balance(client: algod.AlgodClient, address: str) -> AccountBalance:
    info = client.account_info(address)
    return AccountBalance(address=address, amount=info["amount"], min_balance=info["min-balance"])


def to_microalgos(amount_algo: float) -> int:
    return int(round(amount_algo * MICROALGOS_PER_ALGO))
