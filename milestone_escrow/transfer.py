"""
Funds-transfer collaborators.

A transfer either completes synchronously or raises TransferError. The
caller runs it inside an atomic store block, so a failure unwinds the
vote, approval or refund that triggered it. A payment that was already
submitted is never reported as a failure.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Set, Tuple

import structlog
from algosdk import transaction
from algosdk.v2client import algod

from milestone_escrow.errors import TransferError

logger = structlog.get_logger(__name__)


class FundsTransfer(Protocol):
    def transfer(self, recipient: str, amount: int) -> None:
        ...


@dataclass(frozen=True)
class Payout:
    recipient: str
    amount: int


class InMemoryTransfer:
    """
    Transfer backend that keeps payouts in memory.

    Args:
        balance: Escrow balance available for payouts, or None for unlimited
    """

    def __init__(self, balance: Optional[int] = None):
        self.balance = balance
        self.payouts: List[Payout] = []
        self._rejecting: Set[str] = set()

    def reject(self, recipient: str) -> None:
        """Make every later payment to `recipient` fail."""
        self._rejecting.add(recipient)

    def accept(self, recipient: str) -> None:
        self._rejecting.discard(recipient)

    def transfer(self, recipient: str, amount: int) -> None:
        if recipient in self._rejecting:
            raise TransferError(f"Recipient {recipient} rejected payment", recipient, amount)
        if self.balance is not None:
            if amount > self.balance:
                raise TransferError(
                    f"Insufficient escrow balance: {self.balance} < {amount}", recipient, amount
                )
            self.balance -= amount
        self.payouts.append(Payout(recipient, amount))

    def total_paid_to(self, recipient: str) -> int:
        return sum(p.amount for p in self.payouts if p.recipient == recipient)


class AlgodTransfer:
    """
    Pay out of an Algorand escrow account.

    Each transfer is a signed PaymentTxn from the escrow account, submitted
    to algod and awaited for confirmation. Amounts are in microALGOs.

    A failure before algod accepts the transaction raises TransferError and
    the calling operation is rolled back. Once algod has returned a tx id the
    payment may still confirm, so a failed confirmation wait does not raise:
    the payout is kept in `unconfirmed` for reconciliation and the escrow
    state commits, which keeps a retried vote or refund from paying twice.

    Args:
        client: Algorand client
        escrow_key: Private key of the escrow account
        escrow_address: Address of the escrow account
        wait_rounds: Rounds to wait for confirmation
        note: Note attached to every payout
    """

    def __init__(
        self,
        client: algod.AlgodClient,
        escrow_key: str,
        escrow_address: str,
        wait_rounds: int = 4,
        note: bytes = b"milestone-escrow-payout",
    ):
        self._client = client
        self._escrow_key = escrow_key
        self.escrow_address = escrow_address
        self._wait_rounds = wait_rounds
        self._note = note
        self.unconfirmed: List[Tuple[str, Payout]] = []

    def transfer(self, recipient: str, amount: int) -> None:
        try:
            params = self._client.suggested_params()
            txn = transaction.PaymentTxn(
                sender=self.escrow_address,
                sp=params,
                receiver=recipient,
                amt=amount,
                note=self._note,
            )
            signed_txn = txn.sign(self._escrow_key)
            tx_id = self._client.send_transaction(signed_txn)
        except Exception as exc:
            logger.warning("payout_failed", recipient=recipient, amount=amount, error=str(exc))
            raise TransferError(
                f"Payment of {amount} to {recipient} failed: {exc}", recipient, amount
            ) from exc

        try:
            transaction.wait_for_confirmation(self._client, tx_id, self._wait_rounds)
        except Exception as exc:
            self.unconfirmed.append((tx_id, Payout(recipient, amount)))
            logger.error(
                "payout_unconfirmed", recipient=recipient, amount=amount, tx_id=tx_id, error=str(exc)
            )
            return

        logger.info("payout_confirmed", recipient=recipient, amount=amount, tx_id=tx_id)
