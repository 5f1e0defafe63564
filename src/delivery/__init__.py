"""File download delivery.

Validation and header negotiation live in :mod:`.service`; the body is
sent by one of the transporters in :mod:`.transport`, within the limits of
a per-request :class:`ResourceBudget`.
"""

from src.delivery.budget import ResourceBudget, parse_size, time_limit_for
from src.delivery.models import TransferOutcome, TransferRequest
from src.delivery.service import DownloadTransfer, build_transporter
from src.delivery.transport import OffloadTransporter, StreamingTransporter, Transporter

__all__ = [
    "DownloadTransfer",
    "OffloadTransporter",
    "ResourceBudget",
    "StreamingTransporter",
    "TransferOutcome",
    "TransferRequest",
    "Transporter",
    "build_transporter",
    "parse_size",
    "time_limit_for",
]
