"""Shared fixtures for the milestone escrow test suites."""

import pytest

from milestone_escrow.clock import ManualClock
from milestone_escrow.config import EscrowSettings
from milestone_escrow.contract import MilestoneEscrow
from milestone_escrow.transfer import InMemoryTransfer

T = 1_700_000_000
CREATOR = "creator"


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T)


@pytest.fixture
def transfer() -> InMemoryTransfer:
    return InMemoryTransfer()


@pytest.fixture
def settings() -> EscrowSettings:
    return EscrowSettings()


@pytest.fixture
def escrow(clock, transfer, settings) -> MilestoneEscrow:
    """Create a fresh escrow engine for each test."""
    return MilestoneEscrow(clock=clock, transfer=transfer, settings=settings)


@pytest.fixture
def campaign_id(escrow) -> int:
    """Campaign with target=100 and deadline=T+10, no milestones."""
    return escrow.create_campaign(CREATOR, "Project Fund", "Fund a project", 100, T + 10)


def assert_ledger_balanced(escrow: MilestoneEscrow, campaign_id: int) -> None:
    contributions = escrow.store.contributions(campaign_id)
    assert escrow.get_campaign_details(campaign_id).total_raised == sum(contributions.values())
