"""
Tests for read-only queries

Tests cover:
- Campaign, contributor and milestone views
- Repeated reads without mutation are identical
- Unknown ids
"""

import pytest

from conftest import CREATOR, T
from milestone_escrow.errors import CampaignNotFoundError, StateError
from milestone_escrow.models import CampaignDetails, CampaignStatus, MilestoneStatus


class TestQueries:
    def test_get_campaign_details_is_idempotent(self, escrow, campaign_id):
        escrow.contribute("x", campaign_id, 25)

        first = escrow.get_campaign_details(campaign_id)
        again = [escrow.get_campaign_details(campaign_id) for _ in range(5)]

        assert all(details == first for details in again)
        assert first == CampaignDetails(
            name="Project Fund",
            description="Fund a project",
            target_amount=100,
            total_raised=25,
            deadline=T + 10,
            creator=CREATOR,
            status=CampaignStatus.ACTIVE,
        )

    def test_get_milestone_status(self, escrow, campaign_id):
        escrow.add_milestone(CREATOR, campaign_id, 40, "Prototype")

        assert escrow.get_milestone_status(campaign_id, 0) == MilestoneStatus(
            description="Prototype", amount=40, approved=False, votes=0
        )

    def test_get_milestone_status_out_of_range(self, escrow, campaign_id):
        with pytest.raises(StateError, match="Milestone 0 does not exist"):
            escrow.get_milestone_status(campaign_id, 0)

    def test_contributors_in_first_contribution_order(self, escrow, campaign_id):
        for identity in ("carol", "alice", "bob", "alice"):
            escrow.contribute(identity, campaign_id, 1)

        assert escrow.get_campaign_contributors(campaign_id) == ["carol", "alice", "bob"]

    def test_returned_contributor_list_is_a_copy(self, escrow, campaign_id):
        escrow.contribute("alice", campaign_id, 1)

        escrow.get_campaign_contributors(campaign_id).append("intruder")

        assert escrow.get_campaign_contributors(campaign_id) == ["alice"]

    def test_get_all_campaigns_empty(self, escrow):
        assert escrow.get_all_campaigns() == []
        assert escrow.get_campaign_count() == 0

    def test_escrow_balance_tracks_releases(self, escrow, clock):
        campaign_id = escrow.create_campaign(
            CREATOR, "Tranches", "d", 100, T + 10,
            milestone_descriptions=["First"], milestone_amounts=[30],
        )
        escrow.contribute("x", campaign_id, 80)
        escrow.approve_milestone("x", campaign_id, 0)

        assert escrow.get_escrow_balance(campaign_id) == 50

    @pytest.mark.parametrize(
        "query",
        [
            lambda e: e.get_campaign_details(5),
            lambda e: e.get_contributor_info(5, "x"),
            lambda e: e.get_milestone_status(5, 0),
            lambda e: e.get_campaign_contributors(5),
            lambda e: e.get_milestone_count(5),
            lambda e: e.get_escrow_balance(5),
        ],
    )
    def test_unknown_campaign(self, escrow, query):
        with pytest.raises(CampaignNotFoundError, match="Campaign 5 does not exist"):
            query(escrow)
