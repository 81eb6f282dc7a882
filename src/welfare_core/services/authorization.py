"""Reviewer capability table.

The workflow only checks claim status. Which reviewer may drive which
transition is decided here, from an explicit table rather than scattered
role-string comparisons.
"""

from enum import Enum
from types import MappingProxyType
from typing import Final

from beartype import beartype

from ..core.errors import Forbidden
from ..core.result_types import Err, Ok, Result
from ..models.actor import Actor, ReviewerRole


class ClaimAction(str, Enum):
    """Reviewer operations subject to role checks."""

    ADMIN_APPROVE = "ADMIN_APPROVE"
    MANAGER_APPROVE = "MANAGER_APPROVE"
    REJECT = "REJECT"
    VIEW_ALL_CLAIMS = "VIEW_ALL_CLAIMS"
    MANAGE_CATALOG = "MANAGE_CATALOG"


CAPABILITIES: Final = MappingProxyType(
    {
        ReviewerRole.ADMIN: frozenset(
            {
                ClaimAction.ADMIN_APPROVE,
                ClaimAction.REJECT,
                ClaimAction.VIEW_ALL_CLAIMS,
            }
        ),
        ReviewerRole.MANAGER: frozenset(
            {
                ClaimAction.MANAGER_APPROVE,
                ClaimAction.REJECT,
                ClaimAction.VIEW_ALL_CLAIMS,
            }
        ),
        ReviewerRole.PRIMARY: frozenset(ClaimAction),
    }
)


@beartype
def can_perform(actor: Actor, action: ClaimAction) -> bool:
    """Whether ``actor`` holds the capability for ``action``."""
    if not actor.is_reviewer or actor.role is None:
        return False
    return action in CAPABILITIES[actor.role]


@beartype
def authorize(actor: Actor, action: ClaimAction) -> Result[Actor, Forbidden]:
    if can_perform(actor, action):
        return Ok(actor)
    role = actor.role.value if actor.role is not None else actor.kind.value
    return Err(Forbidden(f"{role} may not perform {action.value}"))
