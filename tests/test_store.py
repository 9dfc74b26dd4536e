"""
Tests for the escrow store

Tests cover:
- Rollback of every write in a failed atomic block
- Event publication only on commit
- Nested blocks joining the enclosing transaction of the same campaign
- Serialized concurrent contributions
"""

import threading
from dataclasses import replace

import pytest

from conftest import CREATOR, T, assert_ledger_balanced
from milestone_escrow.errors import CampaignNotFoundError
from milestone_escrow.events import ContributionMade, EventLog
from milestone_escrow.models import Campaign, Milestone
from milestone_escrow.store import EscrowStore


@pytest.fixture
def store() -> EscrowStore:
    store = EscrowStore()
    with store.atomic():
        campaign_id = store.allocate_campaign_id()
        store.insert_campaign(
            Campaign(id=campaign_id, name="c", description="d", target_amount=100, deadline=T, creator=CREATOR)
        )
    return store


class TestAtomic:
    def test_rollback_restores_every_write(self, store):
        # Arrange
        campaign = store.require_campaign(1)

        # Act
        with pytest.raises(RuntimeError, match="boom"):
            with store.atomic(1) as journal:
                store.add_contributor(1, "alice")
                store.put_contribution(1, "alice", 25)
                store.put_campaign(replace(campaign, total_raised=25))
                store.put_milestone(Milestone(campaign_id=1, index=0, description="m", amount=5))
                store.add_voter(1, 0, "alice")
                journal.stage(ContributionMade(campaign_id=1, contributor="alice", amount=25, total_raised=25))
                raise RuntimeError("boom")

        # Assert
        assert store.require_campaign(1) == campaign
        assert store.contribution_of(1, "alice") == 0
        assert store.contributors(1) == []
        assert not store.is_contributor(1, "alice")
        assert store.get_milestone(1, 0) is None
        assert not store.has_voted(1, 0, "alice")
        assert len(store.event_log) == 0

    def test_failed_creation_releases_id(self, store):
        with pytest.raises(ValueError):
            with store.atomic():
                campaign_id = store.allocate_campaign_id()
                store.insert_campaign(
                    Campaign(id=campaign_id, name="x", description="", target_amount=1, deadline=T, creator=CREATOR)
                )
                raise ValueError("abort")

        assert store.campaign_ids() == [1]
        with store.atomic():
            assert store.allocate_campaign_id() == 2

    def test_events_published_on_commit(self, store):
        seen = []
        store.event_log.subscribe(seen.append)

        with store.atomic(1) as journal:
            journal.stage(ContributionMade(campaign_id=1, contributor="a", amount=1, total_raised=1))
            assert seen == []

        assert [e.contributor for e in seen] == ["a"]
        assert list(store.event_log) == seen

    def test_nested_block_joins_outer(self, store):
        with pytest.raises(RuntimeError):
            with store.atomic(1):
                with store.atomic(1):
                    store.put_contribution(1, "alice", 10)
                raise RuntimeError("outer fails")

        assert store.contribution_of(1, "alice") == 0

    def test_nested_block_for_other_campaign_refused(self, store):
        with pytest.raises(RuntimeError, match="nested inside campaign 1"):
            with store.atomic(1):
                store.put_contribution(1, "alice", 10)
                with store.atomic(2):
                    pass

        assert store.contribution_of(1, "alice") == 0

    def test_mutation_outside_block_refused(self, store):
        with pytest.raises(RuntimeError, match="outside of an atomic block"):
            store.put_contribution(1, "alice", 10)

    def test_unknown_campaign_has_no_lock(self, store):
        with pytest.raises(CampaignNotFoundError):
            with store.atomic(7):
                pass


class TestConcurrency:
    def test_parallel_contributions_keep_ledger_balanced(self, escrow, campaign_id):
        def contribute(identity):
            for _ in range(50):
                escrow.contribute(identity, campaign_id, 1)

        threads = [threading.Thread(target=contribute, args=(f"user{i}",)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert escrow.get_campaign_details(campaign_id).total_raised == 400
        assert len(escrow.get_campaign_contributors(campaign_id)) == 8
        assert_ledger_balanced(escrow, campaign_id)


def test_event_log_filters_by_type():
    log = EventLog()
    log.publish([ContributionMade(campaign_id=1, contributor="a", amount=1, total_raised=1)])

    assert len(log.of_type(ContributionMade)) == 1
    assert log.snapshot()[0].to_dict()["event_type"] == "ContributionMade"


def test_event_log_reads_while_publishing():
    log = EventLog()

    def publish(contributor):
        for amount in range(1, 101):
            log.publish([ContributionMade(campaign_id=1, contributor=contributor, amount=amount, total_raised=amount)])

    threads = [threading.Thread(target=publish, args=(name,)) for name in ("a", "b", "c")]
    for thread in threads:
        thread.start()
    while any(thread.is_alive() for thread in threads):
        assert len(log.of_type(ContributionMade)) <= 300
    for thread in threads:
        thread.join()

    assert len(log) == len(log.of_type(ContributionMade)) == len(log.snapshot()) == 300
