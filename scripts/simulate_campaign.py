"""
Campaign Simulation Script

Runs the reference campaign scenarios against an in-memory escrow and prints
the resulting state and event log.

Usage:
    python scripts/simulate_campaign.py
    python scripts/simulate_campaign.py --scenario refund
    python scripts/simulate_campaign.py --public-finalize
"""

import argparse
from dataclasses import replace

from milestone_escrow.clock import ManualClock
from milestone_escrow.config import EscrowSettings
from milestone_escrow.contract import MilestoneEscrow
from milestone_escrow.errors import EscrowError
from milestone_escrow.log import configure_logging
from milestone_escrow.transfer import InMemoryTransfer

START = 1_700_000_000
CREATOR = "creator"


def run_success(escrow: MilestoneEscrow, clock: ManualClock) -> int:
    campaign_id = escrow.create_campaign(CREATOR, "Solar Roof", "Panels for the hall", 100, START + 10)
    clock.set(START + 1)
    escrow.contribute("alice", campaign_id, 60)
    escrow.contribute("bob", campaign_id, 40)
    clock.set(START + 11)
    escrow.finalize_campaign(CREATOR, campaign_id)
    return campaign_id


def run_refund(escrow: MilestoneEscrow, clock: ManualClock) -> int:
    campaign_id = escrow.create_campaign(CREATOR, "Book Drive", "Library books", 100, START + 10)
    clock.set(START + 1)
    escrow.contribute("alice", campaign_id, 30)
    clock.set(START + 11)
    escrow.finalize_campaign(CREATOR, campaign_id)
    escrow.claim_refund("alice", campaign_id)
    return campaign_id


def run_milestone(escrow: MilestoneEscrow, clock: ManualClock) -> int:
    campaign_id = escrow.create_campaign(
        CREATOR, "Community Garden", "Beds and tools", 150, START + 10,
        milestone_descriptions=["Build beds"], milestone_amounts=[50],
    )
    clock.set(START + 1)
    for contributor in ("alice", "bob", "carol"):
        escrow.contribute(contributor, campaign_id, 50)
    for contributor in ("alice", "bob", "carol"):
        escrow.approve_milestone(contributor, campaign_id, 0)
    return campaign_id


SCENARIOS = {
    "success": run_success,
    "refund": run_refund,
    "milestone": run_milestone,
}


def main():
    parser = argparse.ArgumentParser(description="Simulate milestone escrow campaigns")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), default="milestone")
    parser.add_argument("--public-finalize", action="store_true", help="Allow any caller to finalize")
    args = parser.parse_args()

    settings = EscrowSettings.from_env()
    if args.public_finalize:
        settings = replace(settings, finalize_restricted_to_creator=False)
    configure_logging(settings.log_level, json=False)

    clock = ManualClock(START)
    transfer = InMemoryTransfer()
    escrow = MilestoneEscrow(clock=clock, transfer=transfer, settings=settings)

    print("=" * 60)
    print(f"Milestone Escrow - Simulation: {args.scenario}")
    print("=" * 60)

    try:
        campaign_id = SCENARIOS[args.scenario](escrow, clock)
    except EscrowError as e:
        print(f"❌ {type(e).__name__}: {e}")
        raise SystemExit(1)

    details = escrow.get_campaign_details(campaign_id)
    print(f"\nCampaign {campaign_id}: {details.name}")
    print(f"   Status: {details.status.name}")
    print(f"   Raised: {details.total_raised} / {details.target_amount}")
    print(f"   Escrow: {escrow.get_escrow_balance(campaign_id)}")
    print(f"   Contributors: {', '.join(escrow.get_campaign_contributors(campaign_id))}")

    print("\nPayouts:")
    for payout in transfer.payouts:
        print(f"   {payout.recipient}: {payout.amount}")

    print("\nEvents:")
    for event in escrow.events:
        print(f"   {event.to_dict()}")


if __name__ == "__main__":
    main()
