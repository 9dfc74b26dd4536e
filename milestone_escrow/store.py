"""
Shared escrow store with per-campaign atomic transactions.

Every state-mutating operation runs inside `EscrowStore.atomic(campaign_id)`:

- the campaign's lock is held for the whole call, so operations on one
  campaign are serialized while different campaigns proceed in parallel
- every write records an undo action in the thread's journal
- if anything raises (including a failed funds transfer), the journal is
  replayed in reverse and the exception propagates unchanged
- events staged during the block are published only after it commits

Campaign creation uses `atomic()` with no id; it holds the registry lock so
id allocation can be undone without racing another creation.

Reads take no lock; records are immutable and replaced whole on write.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from milestone_escrow.errors import CampaignNotFoundError
from milestone_escrow.events import EscrowEvent, EventLog
from milestone_escrow.models import Campaign, Milestone


class Journal:
    """Undo log and staged events of one atomic block."""

    def __init__(self, campaign_id: Optional[int] = None):
        self.campaign_id = campaign_id
        self._undo: List[Callable[[], None]] = []
        self.events: List[EscrowEvent] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def stage(self, event: EscrowEvent) -> None:
        self.events.append(event)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()
        self.events.clear()


class EscrowStore:
    """
    Single store shared by all escrow components.

    Layout:
        campaigns:      {campaign_id: Campaign}
        milestones:     {(campaign_id, index): Milestone}
        contributions:  {(campaign_id, identity): amount}
        contributors:   {(campaign_id, identity)} plus per-campaign order
        voters:         {(campaign_id, index, identity)}
    """

    def __init__(self, event_log: Optional[EventLog] = None):
        self.event_log = event_log or EventLog()
        self._campaigns: Dict[int, Campaign] = {}
        self._milestones: Dict[Tuple[int, int], Milestone] = {}
        self._contributions: Dict[Tuple[int, str], int] = {}
        self._contributors: Set[Tuple[int, str]] = set()
        self._contributor_order: Dict[int, List[str]] = {}
        self._voters: Set[Tuple[int, int, str]] = set()
        self._next_campaign_id = 1
        self._registry_lock = threading.RLock()
        self._campaign_locks: Dict[int, threading.RLock] = {}
        self._local = threading.local()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def atomic(self, campaign_id: Optional[int] = None) -> Iterator[Journal]:
        """
        Run a block as one all-or-nothing transaction.

        Args:
            campaign_id: Campaign whose lock scopes the block, or None to
                scope it to the registry (campaign creation)

        Yields:
            The block's journal, used to stage events
        """
        current = getattr(self._local, "journal", None)
        if current is not None:
            # Nested blocks join the enclosing transaction, on its campaign only.
            if campaign_id != current.campaign_id:
                raise RuntimeError(
                    f"Atomic block for campaign {campaign_id} nested inside campaign {current.campaign_id}"
                )
            yield current
            return

        lock = self._registry_lock if campaign_id is None else self._lock_for(campaign_id)
        with lock:
            journal = Journal(campaign_id)
            self._local.journal = journal
            try:
                yield journal
            except BaseException:
                journal.rollback()
                raise
            finally:
                self._local.journal = None
        self.event_log.publish(journal.events)

    def _lock_for(self, campaign_id: int) -> threading.RLock:
        with self._registry_lock:
            lock = self._campaign_locks.get(campaign_id)
        if lock is None:
            raise CampaignNotFoundError(campaign_id)
        return lock

    def _journal(self) -> Journal:
        journal = getattr(self._local, "journal", None)
        if journal is None:
            raise RuntimeError("Store mutation outside of an atomic block")
        return journal

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    def allocate_campaign_id(self) -> int:
        journal = self._journal()
        campaign_id = self._next_campaign_id
        self._next_campaign_id = campaign_id + 1

        def undo():
            self._next_campaign_id = campaign_id

        journal.record(undo)
        return campaign_id

    def insert_campaign(self, campaign: Campaign) -> None:
        journal = self._journal()
        self._campaigns[campaign.id] = campaign
        self._contributor_order[campaign.id] = []
        self._campaign_locks[campaign.id] = threading.RLock()

        def undo():
            del self._campaigns[campaign.id]
            del self._contributor_order[campaign.id]
            del self._campaign_locks[campaign.id]

        journal.record(undo)

    def put_campaign(self, campaign: Campaign) -> None:
        journal = self._journal()
        previous = self._campaigns[campaign.id]
        self._campaigns[campaign.id] = campaign
        journal.record(lambda: self._campaigns.__setitem__(campaign.id, previous))

    def get_campaign(self, campaign_id: int) -> Optional[Campaign]:
        return self._campaigns.get(campaign_id)

    def require_campaign(self, campaign_id: int) -> Campaign:
        campaign = self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    def campaign_ids(self) -> List[int]:
        return sorted(self._campaigns)

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def put_milestone(self, milestone: Milestone) -> None:
        journal = self._journal()
        key = (milestone.campaign_id, milestone.index)
        previous = self._milestones.get(key)
        self._milestones[key] = milestone

        def undo():
            if previous is None:
                del self._milestones[key]
            else:
                self._milestones[key] = previous

        journal.record(undo)

    def get_milestone(self, campaign_id: int, index: int) -> Optional[Milestone]:
        return self._milestones.get((campaign_id, index))

    def milestones(self, campaign_id: int) -> List[Milestone]:
        campaign = self.require_campaign(campaign_id)
        return [self._milestones[(campaign_id, i)] for i in range(campaign.milestone_count)]

    # ------------------------------------------------------------------
    # Contributions
    # ------------------------------------------------------------------

    def contribution_of(self, campaign_id: int, identity: str) -> int:
        return self._contributions.get((campaign_id, identity), 0)

    def put_contribution(self, campaign_id: int, identity: str, amount: int) -> None:
        journal = self._journal()
        key = (campaign_id, identity)
        previous = self._contributions.get(key)
        self._contributions[key] = amount

        def undo():
            if previous is None:
                del self._contributions[key]
            else:
                self._contributions[key] = previous

        journal.record(undo)

    def contributions(self, campaign_id: int) -> Dict[str, int]:
        return {
            identity: self.contribution_of(campaign_id, identity)
            for identity in self._contributor_order.get(campaign_id, [])
        }

    def is_contributor(self, campaign_id: int, identity: str) -> bool:
        return (campaign_id, identity) in self._contributors

    def add_contributor(self, campaign_id: int, identity: str) -> None:
        journal = self._journal()
        self._contributors.add((campaign_id, identity))
        self._contributor_order[campaign_id].append(identity)

        def undo():
            self._contributors.discard((campaign_id, identity))
            self._contributor_order[campaign_id].pop()

        journal.record(undo)

    def contributors(self, campaign_id: int) -> List[str]:
        return list(self._contributor_order.get(campaign_id, []))

    def contributor_count(self, campaign_id: int) -> int:
        return len(self._contributor_order.get(campaign_id, []))

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    def has_voted(self, campaign_id: int, index: int, identity: str) -> bool:
        return (campaign_id, index, identity) in self._voters

    def add_voter(self, campaign_id: int, index: int, identity: str) -> None:
        journal = self._journal()
        key = (campaign_id, index, identity)
        self._voters.add(key)
        journal.record(lambda: self._voters.discard(key))
