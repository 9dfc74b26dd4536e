"""
Milestone governor.

One contributor, one vote, regardless of contribution size. A milestone is
approved once strictly more than half of the campaign's distinct
contributors have voted for it; an exact half does not approve. Approval is
irreversible and triggers the milestone's payout in the same atomic step.

Votes keep being accepted after approval. They are counted and announced
but never trigger a second payout.

Voting closes once the campaign can only fail (deadline reached, target
missed). From then on contributors may take refunds, so the contributor set
behind every counted vote stays fixed.
"""

from dataclasses import replace

import structlog

from milestone_escrow.clock import Clock
from milestone_escrow.disbursement import EscrowDisbursement
from milestone_escrow.errors import AuthorizationError, StateError
from milestone_escrow.events import MilestoneApproved
from milestone_escrow.store import EscrowStore

logger = structlog.get_logger(__name__)


def quorum_reached(votes: int, contributor_count: int) -> bool:
    return votes * 2 > contributor_count


class MilestoneGovernor:
    def __init__(self, store: EscrowStore, clock: Clock, disbursement: EscrowDisbursement):
        self._store = store
        self._clock = clock
        self._disbursement = disbursement

    def approve_milestone(self, campaign_id: int, milestone_index: int, identity: str) -> None:
        """
        Cast `identity`'s approval vote on a milestone.

        Args:
            campaign_id: ID of the campaign
            milestone_index: Zero-based index of the milestone
            identity: Voting contributor
        """
        with self._store.atomic(campaign_id) as journal:
            campaign = self._store.require_campaign(campaign_id)
            if not campaign.is_active:
                raise StateError("Campaign not active")
            if self._clock.now() >= campaign.deadline and campaign.total_raised < campaign.target_amount:
                raise StateError("Campaign fell short of its target; voting is closed")
            if not 0 <= milestone_index < campaign.milestone_count:
                raise StateError(f"Milestone {milestone_index} does not exist")
            if self._store.contribution_of(campaign_id, identity) == 0:
                raise AuthorizationError("Only contributors can vote")
            if self._store.has_voted(campaign_id, milestone_index, identity):
                raise StateError("Already voted on this milestone")

            milestone = self._store.get_milestone(campaign_id, milestone_index)
            votes = milestone.votes + 1
            crosses = not milestone.approved and quorum_reached(
                votes, self._store.contributor_count(campaign_id)
            )
            if crosses:
                self._disbursement.check_releasable(campaign, milestone)

            self._store.add_voter(campaign_id, milestone_index, identity)
            self._store.put_milestone(replace(milestone, votes=votes, approved=milestone.approved or crosses))
            if crosses:
                self._disbursement.release(campaign_id, milestone_index)

            journal.stage(
                MilestoneApproved(
                    campaign_id=campaign_id,
                    milestone_index=milestone_index,
                    voter=identity,
                    votes=votes,
                    approved=milestone.approved or crosses,
                )
            )

        logger.info(
            "milestone_vote_recorded",
            campaign_id=campaign_id,
            milestone_index=milestone_index,
            voter=identity,
            votes=votes,
            quorum_crossed=crosses,
        )
