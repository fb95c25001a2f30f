"""Best-effort concurrent fan-out.

Runs independent remote operations together and waits for all of them. A
failure in one never cancels the others; it is logged and reported in the
result.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, List, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass
class FanoutResult:
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


async def gather_settled(operations: Sequence[Tuple[str, Awaitable[Any]]]) -> FanoutResult:
    """Await every ``(label, awaitable)`` pair.

    An operation fails when it raises or returns ``False`` (the gateway's
    failure signal); ``None`` and other values count as success.
    """
    result = FanoutResult()
    if not operations:
        return result
    labels = [label for label, _ in operations]
    outcomes = await asyncio.gather(*(op for _, op in operations), return_exceptions=True)
    for label, outcome in zip(labels, outcomes):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.error("%s raised: %r", label, outcome)
            result.failed.append(label)
        elif outcome is False:
            result.failed.append(label)
        else:
            result.succeeded.append(label)
    if result.failed:
        logger.warning("%d of %d operations failed: %s", len(result.failed), result.total, ", ".join(result.failed))
    return result
