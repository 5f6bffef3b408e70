"""
Authorization collaborator.

Admin-only engine actions (create / pause / resume pool) call
``require_admin`` before doing anything else. The engine receives the
authorizer as a dependency; any object with this shape can replace
``OwnerAuthorizer``.
"""

from typing import Protocol, runtime_checkable

from ..exceptions import UnauthorizedError, ValidationError
from ..logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Authorizer(Protocol):

    @property
    def admin(self) -> str: ...

    def require_admin(self, caller: str) -> None: ...


class OwnerAuthorizer:
    """Single administrative identity (ownership pattern)."""

    def __init__(self, owner: str):
        if not owner:
            raise ValidationError("owner cannot be empty")
        self._owner = owner

    @property
    def admin(self) -> str:
        return self._owner

    def require_admin(self, caller: str) -> None:
        if caller != self._owner:
            raise UnauthorizedError(f"{caller} is not the administrator")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.require_admin(caller)
        if not new_owner:
            raise ValidationError("new owner cannot be empty")
        logger.info(f"Ownership transferred: {self._owner} → {new_owner}")
        self._owner = new_owner

    def __repr__(self) -> str:
        return f"<OwnerAuthorizer owner={self._owner}>"
