"""Enum types for models."""

from enum import Enum


class PhotoType(str, Enum):
    """Kind of photo attached to a project."""

    PROGRESS = "progress"
    FINAL = "final"


class NeedleType(str, Enum):
    """Needle construction."""

    CIRCULAR = "circular"
    STRAIGHT = "straight"
    DPN = "dpn"
    INTERCHANGEABLE = "interchangeable"

    @property
    def has_length(self) -> bool:
        """Cable length only applies to circular and interchangeable needles."""
        return self in (NeedleType.CIRCULAR, NeedleType.INTERCHANGEABLE)


class YarnWeight(str, Enum):
    """Known yarn weights.

    ``Yarn.weight`` is stored as free text, so values outside this list are
    accepted as-is.
    """

    LACE = "lace"
    FINGERING = "fingering"
    SPORT = "sport"
    DK = "dk"
    WORSTED = "worsted"
    ARAN = "aran"
    BULKY = "bulky"
    SUPER_BULKY = "super-bulky"
    JUMBO = "jumbo"
