from .exceptions import (
    BookSwapError,
    ConflictError,
    ForbiddenError,
    InvalidIdError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    SideEffectError,
)

__all__ = [
    'BookSwapError',
    'ConflictError',
    'ForbiddenError',
    'InvalidIdError',
    'InvalidTransitionError',
    'NotFoundError',
    'PreconditionFailedError',
    'SideEffectError',
]
