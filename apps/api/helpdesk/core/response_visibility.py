"""Per-viewer filtering of ticket responses (read boundary only)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence, TypeVar

from helpdesk.db.enums import Role

if TYPE_CHECKING:
    from helpdesk.db.models import Ticket
    from helpdesk.schemas.auth import Actor

R = TypeVar("R")


def filter_responses(actor: "Actor", ticket: "Ticket", responses: Sequence[R]) -> list[R]:
    """
    Return the responses actor may see, in their original order.

    - Customers never see internal notes.
    - Admins and agents see everything.
    - A viewer outside the ticket's organization sees nothing.

    Never mutates the input; filtering twice equals filtering once.
    """
    if actor.org_id is None or actor.org_id != ticket.organization_id:
        return []
    if actor.role == Role.CUSTOMER:
        return [response for response in responses if not response.is_internal]
    return list(responses)
