"""Structured logging helpers (content-free: ids only, never ticket text)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    org_id: UUID | str | None = None,
    ticket_id: UUID | str | None = None,
    target_user_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Return a log context dict suitable for ``extra=``."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if org_id:
        context["org_id"] = str(org_id)
    if ticket_id:
        context["ticket_id"] = str(ticket_id)
    if target_user_id:
        context["target_user_id"] = str(target_user_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    for key, value in fields.items():
        if value is not None:
            context[key] = value
    return context
