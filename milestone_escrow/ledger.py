"""
Contribution ledger.

Records per-identity contributions, the ordered set of distinct
contributors (the quorum denominator) and the campaign's running total.
"""

from dataclasses import replace

import structlog

from milestone_escrow.clock import Clock
from milestone_escrow.errors import StateError, require_amount
from milestone_escrow.events import ContributionMade
from milestone_escrow.store import EscrowStore

logger = structlog.get_logger(__name__)


class ContributionLedger:
    """
    Args:
        store: Shared escrow store
        clock: Clock collaborator
        close_at_target: Reject contributions once the target is reached
    """

    def __init__(self, store: EscrowStore, clock: Clock, close_at_target: bool = False):
        self._store = store
        self._clock = clock
        self._close_at_target = close_at_target

    def contribute(self, campaign_id: int, identity: str, amount: int) -> None:
        """
        Record a contribution of `amount` from `identity`.

        Args:
            campaign_id: ID of the campaign
            identity: Contributing identity
            amount: Contribution in value units, must be positive
        """
        require_amount(amount, "amount")

        with self._store.atomic(campaign_id) as journal:
            campaign = self._store.require_campaign(campaign_id)
            if not campaign.is_active:
                raise StateError("Campaign not active")
            if self._clock.now() >= campaign.deadline:
                raise StateError("Campaign ended")
            if self._close_at_target and campaign.total_raised >= campaign.target_amount:
                raise StateError("Campaign target already reached")

            if not self._store.is_contributor(campaign_id, identity):
                self._store.add_contributor(campaign_id, identity)

            new_total = self._store.contribution_of(campaign_id, identity) + amount
            self._store.put_contribution(campaign_id, identity, new_total)

            total_raised = campaign.total_raised + amount
            self._store.put_campaign(replace(campaign, total_raised=total_raised))
            journal.stage(
                ContributionMade(
                    campaign_id=campaign_id,
                    contributor=identity,
                    amount=amount,
                    total_raised=total_raised,
                )
            )

        logger.info("contribution_recorded", campaign_id=campaign_id, contributor=identity, amount=amount)

    def contribution_of(self, campaign_id: int, identity: str) -> int:
        self._store.require_campaign(campaign_id)
        return self._store.contribution_of(campaign_id, identity)

    def contributors(self, campaign_id: int) -> list[str]:
        self._store.require_campaign(campaign_id)
        return self._store.contributors(campaign_id)
