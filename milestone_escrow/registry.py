"""
Campaign registry.

Creates campaigns and appends milestones. Owns campaign metadata; every
other component reads campaigns through the shared store.
"""

from dataclasses import replace
from typing import Sequence

import structlog

from milestone_escrow.clock import Clock
from milestone_escrow.errors import AuthorizationError, StateError, ValidationError, require_amount
from milestone_escrow.events import CampaignCreated, MilestoneAdded
from milestone_escrow.models import Campaign, Milestone
from milestone_escrow.store import EscrowStore, Journal

logger = structlog.get_logger(__name__)


class CampaignRegistry:
    def __init__(self, store: EscrowStore, clock: Clock):
        self._store = store
        self._clock = clock

    def create_campaign(
        self,
        name: str,
        description: str,
        target_amount: int,
        deadline: int,
        creator: str,
        milestone_descriptions: Sequence[str] = (),
        milestone_amounts: Sequence[int] = (),
    ) -> int:
        """
        Create a new campaign, optionally with an initial milestone plan.

        Args:
            name: Campaign name
            description: Campaign description
            target_amount: Funding target in value units
            deadline: Unix timestamp after which contributions close
            creator: Identity of the creator (receives released funds)
            milestone_descriptions: Descriptions of the initial milestones
            milestone_amounts: Amounts of the initial milestones, same length

        Returns:
            Campaign ID (sequential, starting at 1)
        """
        require_amount(target_amount, "target_amount")
        if isinstance(deadline, bool) or not isinstance(deadline, int):
            raise ValidationError("deadline must be an integer timestamp")
        if deadline <= self._clock.now():
            raise ValidationError("Deadline must be in the future")
        if len(milestone_descriptions) != len(milestone_amounts):
            raise ValidationError(
                f"Got {len(milestone_descriptions)} milestone descriptions "
                f"but {len(milestone_amounts)} amounts"
            )
        for amount in milestone_amounts:
            require_amount(amount, "milestone amount")
        if sum(milestone_amounts) > target_amount:
            raise ValidationError("Milestone amounts exceed the target amount")

        with self._store.atomic() as journal:
            campaign_id = self._store.allocate_campaign_id()
            campaign = Campaign(
                id=campaign_id,
                name=name,
                description=description,
                target_amount=target_amount,
                deadline=deadline,
                creator=creator,
            )
            self._store.insert_campaign(campaign)
            journal.stage(
                CampaignCreated(
                    campaign_id=campaign_id,
                    creator=creator,
                    name=name,
                    target_amount=target_amount,
                    deadline=deadline,
                )
            )
            for text, amount in zip(milestone_descriptions, milestone_amounts):
                self._append_milestone(journal, campaign_id, amount, text)

        logger.info("campaign_created", campaign_id=campaign_id, creator=creator, target_amount=target_amount)
        return campaign_id

    def add_milestone(self, campaign_id: int, amount: int, description: str, caller: str) -> int:
        """
        Append a milestone to a campaign. Creator only.

        Milestones may be added while the campaign is active and before its
        deadline, including after contributions have started.

        Returns:
            Milestone index
        """
        require_amount(amount, "amount")

        with self._store.atomic(campaign_id) as journal:
            campaign = self._store.require_campaign(campaign_id)
            if caller != campaign.creator:
                raise AuthorizationError("Only creator can add milestones")
            if not campaign.is_active:
                raise StateError("Campaign not active")
            if self._clock.now() >= campaign.deadline:
                raise StateError("Campaign deadline has passed")
            planned = sum(m.amount for m in self._store.milestones(campaign_id))
            if planned + amount > campaign.target_amount:
                raise ValidationError("Milestone amounts exceed the target amount")

            index = self._append_milestone(journal, campaign_id, amount, description)

        logger.info("milestone_added", campaign_id=campaign_id, milestone_index=index, amount=amount)
        return index

    def _append_milestone(self, journal: Journal, campaign_id: int, amount: int, description: str) -> int:
        campaign = self._store.require_campaign(campaign_id)
        index = campaign.milestone_count
        self._store.put_milestone(
            Milestone(campaign_id=campaign_id, index=index, description=description, amount=amount)
        )
        self._store.put_campaign(replace(campaign, milestone_count=index + 1))
        journal.stage(
            MilestoneAdded(campaign_id=campaign_id, milestone_index=index, amount=amount, description=description)
        )
        return index
