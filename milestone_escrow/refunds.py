"""
Refund processor.

Returns a contributor's full contribution once the campaign can no longer
succeed. The record is zeroed before the payment goes out; if the payment
fails the zeroing is rolled back and the contributor stays eligible.

Refunds are paid only out of what the campaign itself still holds. Once a
milestone payout has drawn the escrow below a contribution, that refund is
refused rather than paid from other campaigns' funds.
"""

from dataclasses import replace

import structlog

from milestone_escrow.clock import Clock
from milestone_escrow.errors import StateError
from milestone_escrow.events import RefundClaimed
from milestone_escrow.models import CampaignStatus
from milestone_escrow.store import EscrowStore
from milestone_escrow.transfer import FundsTransfer

logger = structlog.get_logger(__name__)


class RefundProcessor:
    def __init__(self, store: EscrowStore, clock: Clock, transfer: FundsTransfer):
        self._store = store
        self._clock = clock
        self._transfer = transfer

    def claim_refund(self, campaign_id: int, identity: str) -> int:
        """
        Refund `identity`'s contribution to a campaign that did not succeed.

        A campaign still active past its deadline only refunds when it fell
        short of its target; otherwise it has to be finalized first.

        Returns:
            Refunded amount
        """
        with self._store.atomic(campaign_id) as journal:
            campaign = self._store.require_campaign(campaign_id)
            if self._clock.now() < campaign.deadline:
                raise StateError("Campaign still active")
            if campaign.status == CampaignStatus.SUCCESSFUL:
                raise StateError("Campaign succeeded")
            if campaign.is_active and campaign.total_raised >= campaign.target_amount:
                raise StateError("Campaign reached its target; finalize it instead")

            amount = self._store.contribution_of(campaign_id, identity)
            if amount == 0:
                raise StateError("No refundable contribution (never contributed or already refunded)")
            if amount > campaign.escrow_balance:
                raise StateError(
                    f"Insufficient escrow for refund: {campaign.escrow_balance} < {amount}"
                )

            self._store.put_contribution(campaign_id, identity, 0)
            self._store.put_campaign(replace(campaign, total_raised=campaign.total_raised - amount))

            self._transfer.transfer(identity, amount)
            journal.stage(RefundClaimed(campaign_id=campaign_id, contributor=identity, amount=amount))

        logger.info("refund_paid", campaign_id=campaign_id, contributor=identity, amount=amount)
        return amount
