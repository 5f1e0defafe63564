"""Request and outcome records for a single download."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel
from starlette.responses import Response

from src.delivery.budget import ResourceBudget

UNKNOWN_SIZE = -1


class TransferRequest(BaseModel):
    """What to send and how the client should see it."""

    file_path: str
    display_name: str
    mime_type: str = ""
    declared_size: int = UNKNOWN_SIZE


@dataclass
class TransferOutcome:
    """Result of one transfer attempt.

    ``strategy`` is ``"offload"``, ``"chunked"`` or ``"single"``.  On
    failure ``response`` is ``None``.
    """

    success: bool
    strategy: str
    size: int
    budget: ResourceBudget
    response: Response | None = None
