"""Per-request memory and time budgets for in-process transfers."""

from __future__ import annotations

from pydantic import BaseModel

from src.utils.logging import get_logger

logger = get_logger(__name__)

# Hard ceiling for the adaptive memory budget (1 GiB).
MEMORY_CEILING = 1024 * 1024 * 1024

# Time budget: 60 s of overhead plus the time needed at 50 KiB/s, at most
# two hours.
MIN_THROUGHPUT = 51200
TIME_OVERHEAD = 60
MAX_TIME_LIMIT = 7200

UNLIMITED = -1

_MULTIPLIERS: dict[str, int] = {
    "k": 1024,
    "m": 1024 ** 2,
    "g": 1024 ** 3,
}


def parse_size(value: str | int) -> int:
    """Convert a limit string such as ``"256M"`` or ``"512k"`` to bytes.

    Plain integers pass through unchanged, so ``"-1"`` stays the unlimited
    sentinel.
    """
    if isinstance(value, int):
        return value
    text = value.strip()
    if not text:
        raise ValueError("empty size string")
    multiplier = _MULTIPLIERS.get(text[-1].lower())
    if multiplier is None:
        return int(text)
    return int(text[:-1].strip()) * multiplier


def time_limit_for(size: int) -> int:
    """Seconds allowed to transfer *size* bytes."""
    if size <= 0:
        return 1
    return min(MAX_TIME_LIMIT, size // MIN_THROUGHPUT + TIME_OVERHEAD)


class ResourceBudget(BaseModel):
    """Limits that apply to one transfer.

    A fresh copy is handed to each request, adapted to the file being sent
    and returned inside the :class:`TransferOutcome`.
    """

    memory_limit: int = 128 * 1024 * 1024
    time_limit: int = 0
    compression: bool = True
    memory_ceiling: int = MEMORY_CEILING

    @classmethod
    def from_limit(cls, memory_limit: str | int, memory_ceiling: int = MEMORY_CEILING) -> ResourceBudget:
        return cls(memory_limit=parse_size(memory_limit), memory_ceiling=memory_ceiling)

    @property
    def unlimited_memory(self) -> bool:
        return self.memory_limit < 0

    def needs_more_memory(self, size: int) -> bool:
        return not self.unlimited_memory and size + 1 > self.memory_limit

    def projected_memory(self, size: int) -> int:
        return int(size * 1.5)

    def raise_memory_for(self, size: int) -> bool:
        """Grow the memory limit to 1.5x *size* when the file does not fit.

        Returns ``True`` if the limit changed.  The limit never grows past
        ``memory_ceiling``; in that case it is left as it was.
        """
        if not self.needs_more_memory(size):
            return False

        projected = self.projected_memory(size)
        if projected > self.memory_ceiling:
            logger.warning(
                "memory_budget_ceiling_exceeded",
                size=size,
                projected=projected,
                ceiling=self.memory_ceiling,
                memory_limit=self.memory_limit,
            )
            return False

        logger.info(
            "memory_budget_raised",
            size=size,
            previous=self.memory_limit,
            memory_limit=projected,
        )
        self.memory_limit = projected
        return True

    def extend_time_for(self, size: int) -> int:
        self.time_limit = time_limit_for(size)
        return self.time_limit

    def disable_compression(self) -> None:
        self.compression = False
