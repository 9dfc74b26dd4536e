"""
Escrow error taxonomy.

ValidationError, AuthorizationError and StateError are raised before any
store mutation. TransferError is raised by the funds-transfer collaborator
during the mutation step; the surrounding atomic block unwinds every write
staged in the same call before it propagates.
"""


class EscrowError(Exception):
    """Base class for every error raised by the escrow core."""


class ValidationError(EscrowError):
    """Malformed input: bad amount, deadline not in the future, mismatched arrays."""


class AuthorizationError(EscrowError):
    """The caller lacks the role the operation requires."""


class StateError(EscrowError):
    """The operation is not valid for the campaign's current state."""


class CampaignNotFoundError(StateError):
    """No campaign is stored under the given id."""

    def __init__(self, campaign_id: int):
        super().__init__(f"Campaign {campaign_id} does not exist")
        self.campaign_id = campaign_id


class TransferError(EscrowError):
    """The funds-transfer collaborator failed to pay `recipient`."""

    def __init__(self, message: str, recipient: str = "", amount: int = 0):
        super().__init__(message)
        self.recipient = recipient
        self.amount = amount


def require_amount(value: int, field: str) -> int:
    """
    Validate an unsigned value amount.

    Args:
        value: Amount in base value units
        field: Field name used in the error message

    Returns:
        The validated amount
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be positive")
    return value
