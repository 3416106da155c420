"""
Queue position model: relative moves within the daemon's waiting queue.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from aria2ctl.exceptions import LocalContractViolation


class PositionOrigin(Enum):
    """Reference point a queue offset is measured from."""

    BEGIN = "begin"
    CURRENT = "current"
    END = "end"


POSITION_TOKENS = {
    PositionOrigin.BEGIN: "POS_SET",
    PositionOrigin.CURRENT: "POS_CUR",
    PositionOrigin.END: "POS_END",
}


def position_token(origin: Union[PositionOrigin, str]) -> str:
    """
    Maps an origin to the daemon's token.

    Accepts a ``PositionOrigin`` or its value (``"begin"``, ``"current"``,
    ``"end"``). Anything else is rejected locally.
    """
    if isinstance(origin, str):
        try:
            origin = PositionOrigin(origin.strip().lower())
        except ValueError:
            raise LocalContractViolation(
                f"Unknown queue origin {origin!r}. Use one of: begin, current, end."
            ) from None
    if not isinstance(origin, PositionOrigin):
        raise LocalContractViolation(f"Unknown queue origin {origin!r}.")
    return POSITION_TOKENS[origin]


@dataclass(frozen=True)
class QueueMove:
    """
    A one-shot instruction to move a task within the queue.

    With ``CURRENT``, ``offset=-1`` moves the task one slot towards the front;
    with ``END``, ``offset=-1`` makes it the second to last.
    """

    gid: str
    offset: int
    origin: PositionOrigin

    def to_params(self) -> list[Any]:
        if isinstance(self.offset, bool) or not isinstance(self.offset, int):
            raise LocalContractViolation(
                f"Queue offset must be an integer, got {self.offset!r}."
            )
        return [self.gid, self.offset, position_token(self.origin)]
