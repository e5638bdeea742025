"""Domain exceptions for the swap workflow, review engine and directories."""


class BookSwapError(Exception):
    """Base exception for all service errors."""
    status_code = 500


class InvalidIdError(BookSwapError):
    """Identifier is not a valid ObjectId."""
    status_code = 400


class NotFoundError(BookSwapError):
    """Entity id does not resolve to an active record."""
    status_code = 404


class ForbiddenError(BookSwapError):
    """Actor lacks the relational right for this action."""
    status_code = 403


class InvalidTransitionError(BookSwapError):
    """Swap state machine guard failed."""
    status_code = 400


class PreconditionFailedError(BookSwapError):
    """Referenced entity is not in the required state."""
    status_code = 400


class ConflictError(BookSwapError):
    """Duplicate live swap or duplicate review."""
    status_code = 409


class SideEffectError(BookSwapError):
    """A mutation that must follow a committed status change did not apply."""
    status_code = 500
