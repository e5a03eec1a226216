"""
Commission engine exceptions.

Every error carries a machine ``code`` and a human-readable ``message``.
Engines raise them; the service facade turns them into structured results.
"""


class CommissionEngineError(Exception):
    """Base class for all engine errors."""

    code = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error_code": self.code, "message": self.message}


class MemberNotFoundError(CommissionEngineError):
    """Referenced member, sponsor or buyer does not exist."""

    code = "not_found"

    def __init__(self, member_id: str | None, role: str = "Member") -> None:
        super().__init__(f"{role} not found: {member_id}")
        self.member_id = member_id


class InsufficientCapacityError(CommissionEngineError):
    """No open slot within the placement search bound."""

    code = "insufficient_capacity"

    def __init__(self, algorithm: str, max_depth: int) -> None:
        super().__init__(
            f"No placement found within depth {max_depth} "
            f"using algorithm '{algorithm}'"
        )
        self.algorithm = algorithm
        self.max_depth = max_depth


class InvalidConfigurationError(CommissionEngineError):
    """Commission structure failed validation at load time."""

    code = "invalid_configuration"


class SlotOccupiedError(CommissionEngineError):
    """Requested child slot already holds a member."""

    code = "slot_occupied"

    def __init__(self, parent_id: str, side: str) -> None:
        super().__init__(f"Position {side} under {parent_id} is already occupied")
        self.parent_id = parent_id
        self.side = side


class InvalidTreeOperationError(CommissionEngineError):
    """Tree mutation would break the tree (self-parenting, cycle, root delete)."""

    code = "invalid_tree_operation"


class DuplicateDistributionError(CommissionEngineError):
    """Commissions for this purchase were already distributed."""

    code = "already_distributed"

    def __init__(self, purchase_id: str) -> None:
        super().__init__(f"Commissions already distributed for purchase {purchase_id}")
        self.purchase_id = purchase_id


class InvalidStatusTransitionError(CommissionEngineError):
    """Transaction is already in a terminal status."""

    code = "invalid_status_transition"


class PersistenceError(CommissionEngineError):
    """A persistence collaborator failed to read or write."""

    code = "persistence_failed"

    def __init__(self, action: str, reason: str) -> None:
        super().__init__(f"{action} failed: {reason}")
        self.action = action
