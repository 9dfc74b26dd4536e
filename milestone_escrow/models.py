"""
Campaign and milestone records.

Records are immutable; the store replaces a record with an updated copy
(`dataclasses.replace`) on every write, so a read never observes a
half-applied change and a rollback only has to put the old object back.

Store layout:
    campaign_{id}                      -> Campaign
    milestone_{campaign_id}_{index}    -> Milestone
    contribution_{campaign_id}_{who}   -> int
    contributor_{campaign_id}_{who}    -> membership (ordered list per campaign)
    voter_{campaign_id}_{index}_{who}  -> membership
"""

from dataclasses import dataclass
from enum import IntEnum


class CampaignStatus(IntEnum):
    """Campaign status. SUCCESSFUL and FAILED are terminal."""

    ACTIVE = 0
    SUCCESSFUL = 1
    FAILED = 2


@dataclass(frozen=True)
class Campaign:
    id: int
    name: str
    description: str
    target_amount: int
    deadline: int
    creator: str
    total_raised: int = 0
    status: CampaignStatus = CampaignStatus.ACTIVE
    milestone_count: int = 0
    released: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == CampaignStatus.ACTIVE

    @property
    def escrow_balance(self) -> int:
        """Value raised and not yet disbursed to the creator."""
        return self.total_raised - self.released


@dataclass(frozen=True)
class Milestone:
    campaign_id: int
    index: int
    description: str
    amount: int
    approved: bool = False
    released: bool = False
    votes: int = 0


@dataclass(frozen=True)
class CampaignDetails:
    """Read view returned by `get_campaign_details`."""

    name: str
    description: str
    target_amount: int
    total_raised: int
    deadline: int
    creator: str
    status: CampaignStatus

    @classmethod
    def from_campaign(cls, campaign: Campaign) -> "CampaignDetails":
        return cls(
            name=campaign.name,
            description=campaign.description,
            target_amount=campaign.target_amount,
            total_raised=campaign.total_raised,
            deadline=campaign.deadline,
            creator=campaign.creator,
            status=campaign.status,
        )


@dataclass(frozen=True)
class MilestoneStatus:
    """Read view returned by `get_milestone_status`."""

    description: str
    amount: int
    approved: bool
    votes: int

    @classmethod
    def from_milestone(cls, milestone: Milestone) -> "MilestoneStatus":
        return cls(
            description=milestone.description,
            amount=milestone.amount,
            approved=milestone.approved,
            votes=milestone.votes,
        )
