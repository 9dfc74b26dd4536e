"""Campaign lifecycle: moves an active campaign into its terminal status."""

from dataclasses import replace

import structlog

from milestone_escrow.clock import Clock
from milestone_escrow.errors import AuthorizationError, StateError
from milestone_escrow.events import CampaignFinalized
from milestone_escrow.models import CampaignStatus
from milestone_escrow.store import EscrowStore

logger = structlog.get_logger(__name__)


class CampaignLifecycle:
    """
    Args:
        store: Shared escrow store
        clock: Clock collaborator
        restricted_to_creator: Only the creator may finalize; when False
            any caller may
    """

    def __init__(self, store: EscrowStore, clock: Clock, restricted_to_creator: bool = True):
        self._store = store
        self._clock = clock
        self._restricted_to_creator = restricted_to_creator

    def finalize_campaign(self, campaign_id: int, caller: str) -> CampaignStatus:
        """
        Finalize a campaign once its deadline has passed or every milestone
        has been approved. SUCCESSFUL if the target was met, FAILED otherwise.

        Returns:
            The terminal status
        """
        with self._store.atomic(campaign_id) as journal:
            campaign = self._store.require_campaign(campaign_id)
            if self._restricted_to_creator and caller != campaign.creator:
                raise AuthorizationError("Only creator can finalize")
            if not campaign.is_active:
                raise StateError("Campaign already finalized")

            milestones = self._store.milestones(campaign_id)
            all_approved = bool(milestones) and all(m.approved for m in milestones)
            if not (self._clock.now() > campaign.deadline or all_approved):
                raise StateError("Deadline not passed and milestones not all approved")

            if campaign.total_raised >= campaign.target_amount:
                status = CampaignStatus.SUCCESSFUL
            else:
                status = CampaignStatus.FAILED
            self._store.put_campaign(replace(campaign, status=status))
            journal.stage(CampaignFinalized(campaign_id=campaign_id, status=status))

        logger.info("campaign_finalized", campaign_id=campaign_id, status=status.name)
        return status
