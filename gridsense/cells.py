"""Cell references and per-cell flags used by grid navigation."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import ClassVar

INDEX_NONE = -1
FLT_MAX = 3.4028234663852886e38


class CellData(enum.IntFlag):
    """Flags stored for every cell of a grid."""

    NONE = 0
    TRAVERSABLE = 1


@dataclass(frozen=True)
class CellRef:
    """Integer coordinates of one grid cell."""

    x: int = INDEX_NONE
    y: int = INDEX_NONE

    INVALID: ClassVar["CellRef"]

    def is_valid(self) -> bool:
        """True when both coordinates are non-negative."""
        return self.x >= 0 and self.y >= 0

    def distance(self, other: "CellRef") -> float:
        """Euclidean distance between two cells, measured in cells."""
        return math.hypot(self.x - other.x, self.y - other.y)


CellRef.INVALID = CellRef()