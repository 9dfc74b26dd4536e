"""
Escrow disbursement.

Pays an approved milestone's amount to the campaign creator, exactly once.
Only the milestone governor calls `release`, from inside the atomic block
that flipped the milestone to approved; if the transfer fails the whole
block, vote included, is rolled back.
"""

from dataclasses import replace

import structlog

from milestone_escrow.errors import StateError
from milestone_escrow.events import FundsReleased
from milestone_escrow.models import Campaign, Milestone
from milestone_escrow.store import EscrowStore
from milestone_escrow.transfer import FundsTransfer

logger = structlog.get_logger(__name__)


class EscrowDisbursement:
    """
    Args:
        store: Shared escrow store
        transfer: Funds-transfer collaborator
        cap_at_raised: Refuse releases larger than the value still held
    """

    def __init__(self, store: EscrowStore, transfer: FundsTransfer, cap_at_raised: bool = True):
        self._store = store
        self._transfer = transfer
        self._cap_at_raised = cap_at_raised

    def check_releasable(self, campaign: Campaign, milestone: Milestone) -> None:
        if milestone.released:
            raise StateError("Funds already released")
        if self._cap_at_raised and milestone.amount > campaign.escrow_balance:
            raise StateError(
                f"Insufficient escrow: milestone needs {milestone.amount}, "
                f"campaign holds {campaign.escrow_balance}"
            )

    def release(self, campaign_id: int, milestone_index: int) -> None:
        with self._store.atomic(campaign_id) as journal:
            campaign = self._store.require_campaign(campaign_id)
            milestone = self._store.get_milestone(campaign_id, milestone_index)
            if milestone is None:
                raise StateError("Milestone does not exist")
            if not milestone.approved:
                raise StateError("Milestone not approved")
            self.check_releasable(campaign, milestone)

            # Effects before the interaction.
            self._store.put_milestone(replace(milestone, released=True))
            self._store.put_campaign(replace(campaign, released=campaign.released + milestone.amount))

            self._transfer.transfer(campaign.creator, milestone.amount)
            journal.stage(
                FundsReleased(
                    campaign_id=campaign_id,
                    milestone_index=milestone_index,
                    recipient=campaign.creator,
                    amount=milestone.amount,
                )
            )

        logger.info(
            "funds_released",
            campaign_id=campaign_id,
            milestone_index=milestone_index,
            recipient=campaign.creator,
            amount=milestone.amount,
        )
