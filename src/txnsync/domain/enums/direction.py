from enum import Enum


class Direction(str, Enum):
    """Direction of a transfer relative to the wallet, rendered as the preposition used in prompts."""

    OUTBOUND = "to"
    INBOUND = "from"

    @classmethod
    def of(cls, is_outbound: bool) -> "Direction":
        return cls.OUTBOUND if is_outbound else cls.INBOUND

    @property
    def sign(self) -> str:
        return "-" if self is Direction.OUTBOUND else "+"
