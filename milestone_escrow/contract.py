"""
Milestone Escrow

A crowdfunding escrow where contributors gate every payout to the creator.
Contributions are held in escrow; each milestone's tranche is released only
after a strict majority of distinct contributors approve it, and
contributors are refunded if the campaign fails.

Features:
- Create campaigns with target, deadline and an optional milestone plan
- Contribute while the campaign is active and before its deadline
- One-contributor-one-vote milestone approval with automatic release
- Refunds for campaigns that do not reach their target
- Every state change is atomic; a failed payout leaves no trace
- Append-only event log of everything that happened

Collaborators:
- Clock: supplies `now` for deadline checks
- Identity: the caller's authenticated identity, passed as `sender`
- Funds transfer: pays creators and refunds contributors
- Event log: receives committed domain events
"""

from typing import Optional, Sequence

from milestone_escrow.algorand import get_algod_client, load_account
from milestone_escrow.clock import Clock, SystemClock
from milestone_escrow.config import EscrowSettings
from milestone_escrow.disbursement import EscrowDisbursement
from milestone_escrow.errors import StateError
from milestone_escrow.governor import MilestoneGovernor
from milestone_escrow.ledger import ContributionLedger
from milestone_escrow.lifecycle import CampaignLifecycle
from milestone_escrow.log import configure_logging
from milestone_escrow.models import CampaignDetails, MilestoneStatus
from milestone_escrow.refunds import RefundProcessor
from milestone_escrow.registry import CampaignRegistry
from milestone_escrow.store import EscrowStore
from milestone_escrow.transfer import AlgodTransfer, FundsTransfer, InMemoryTransfer


class MilestoneEscrow:
    """
    Operation surface of the escrow engine.

    Args:
        store: Shared store; a fresh one is created if omitted
        clock: Clock collaborator; system time if omitted
        transfer: Funds-transfer collaborator; in-memory if omitted
        settings: Escrow policy flags
    """

    def __init__(
        self,
        store: Optional[EscrowStore] = None,
        clock: Optional[Clock] = None,
        transfer: Optional[FundsTransfer] = None,
        settings: Optional[EscrowSettings] = None,
    ):
        self.settings = settings or EscrowSettings()
        self.store = store or EscrowStore()
        self.clock = clock or SystemClock()
        self.transfer = transfer if transfer is not None else InMemoryTransfer()

        self.registry = CampaignRegistry(self.store, self.clock)
        self.ledger = ContributionLedger(
            self.store, self.clock, close_at_target=self.settings.close_at_target
        )
        self.disbursement = EscrowDisbursement(
            self.store, self.transfer, cap_at_raised=self.settings.cap_releases_at_raised
        )
        self.governor = MilestoneGovernor(self.store, self.clock, self.disbursement)
        self.refunds = RefundProcessor(self.store, self.clock, self.transfer)
        self.lifecycle = CampaignLifecycle(
            self.store, self.clock, restricted_to_creator=self.settings.finalize_restricted_to_creator
        )

    @classmethod
    def from_settings(cls, settings: Optional[EscrowSettings] = None) -> "MilestoneEscrow":
        """
        Build an engine paying out of the Algorand escrow account.

        Args:
            settings: Escrow settings; read from the environment if omitted

        Returns:
            Configured engine
        """
        settings = settings or EscrowSettings.from_env()
        configure_logging(settings.log_level, settings.log_json)

        escrow_key, escrow_address = load_account(settings.escrow_mnemonic)
        client = get_algod_client(settings.algod_server, settings.algod_token)
        return cls(transfer=AlgodTransfer(client, escrow_key, escrow_address), settings=settings)

    @property
    def events(self):
        return self.store.event_log

    # ------------------------------------------------------------------
    # State-mutating operations
    # ------------------------------------------------------------------

    def create_campaign(
        self,
        sender: str,
        name: str,
        description: str,
        target_amount: int,
        deadline: int,
        milestone_descriptions: Sequence[str] = (),
        milestone_amounts: Sequence[int] = (),
    ) -> int:
        """
        Create a new campaign owned by `sender`.

        Args:
            sender: Authenticated caller; becomes the creator
            name: Campaign name
            description: Campaign description
            target_amount: Funding target
            deadline: Unix timestamp; must be in the future
            milestone_descriptions: Initial milestone descriptions
            milestone_amounts: Initial milestone amounts

        Returns:
            Campaign ID
        """
        return self.registry.create_campaign(
            name,
            description,
            target_amount,
            deadline,
            sender,
            milestone_descriptions=milestone_descriptions,
            milestone_amounts=milestone_amounts,
        )

    def add_milestone(self, sender: str, campaign_id: int, amount: int, description: str) -> int:
        """
        Add a milestone to a campaign. Only the campaign creator can add milestones.

        Returns:
            Milestone index
        """
        return self.registry.add_milestone(campaign_id, amount, description, sender)

    def contribute(self, sender: str, campaign_id: int, amount: int) -> None:
        self.ledger.contribute(campaign_id, sender, amount)

    def approve_milestone(self, sender: str, campaign_id: int, milestone_index: int) -> None:
        """
        Vote to approve a milestone. Releases its funds to the creator when
        the vote takes approvals past a strict majority of contributors.
        """
        self.governor.approve_milestone(campaign_id, milestone_index, sender)

    def claim_refund(self, sender: str, campaign_id: int) -> None:
        self.refunds.claim_refund(campaign_id, sender)

    def finalize_campaign(self, sender: str, campaign_id: int) -> None:
        self.lifecycle.finalize_campaign(campaign_id, sender)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_campaign_details(self, campaign_id: int) -> CampaignDetails:
        """
        Get campaign details.

        Returns:
            CampaignDetails(name, description, target_amount, total_raised,
            deadline, creator, status)
        """
        return CampaignDetails.from_campaign(self.store.require_campaign(campaign_id))

    def get_contributor_info(self, campaign_id: int, identity: str) -> int:
        return self.ledger.contribution_of(campaign_id, identity)

    def get_milestone_status(self, campaign_id: int, milestone_index: int) -> MilestoneStatus:
        """
        Get milestone details.

        Returns:
            MilestoneStatus(description, amount, approved, votes)
        """
        self.store.require_campaign(campaign_id)
        milestone = self.store.get_milestone(campaign_id, milestone_index)
        if milestone is None:
            raise StateError(f"Milestone {milestone_index} does not exist")
        return MilestoneStatus.from_milestone(milestone)

    def get_all_campaigns(self) -> list[int]:
        return self.store.campaign_ids()

    def get_campaign_contributors(self, campaign_id: int) -> list[str]:
        return self.ledger.contributors(campaign_id)

    def get_campaign_count(self) -> int:
        return len(self.store.campaign_ids())

    def get_milestone_count(self, campaign_id: int) -> int:
        return self.store.require_campaign(campaign_id).milestone_count

    def get_escrow_balance(self, campaign_id: int) -> int:
        """Value raised for the campaign and not yet released or refunded."""
        return self.store.require_campaign(campaign_id).escrow_balance
