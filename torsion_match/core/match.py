"""Fragment and SelectionMatch result containers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd

from torsion_match.core.angles import AngleType
from torsion_match.core.config import MatcherConfig
from torsion_match.core.selection import ResidueId, Selection


class MatchStatus(Enum):
    """Outcome of a matcher invocation."""

    MATCHED = "matched"  # At least one fragment
    EMPTY = "empty"  # Valid run, no fragments in common
    CANCELLED = "cancelled"  # Stopped before completion, no partial results


class Side(Enum):
    """Which selection of a match to project onto."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Fragment:
    """Contiguous run of matched positions on one diagonal.

    Position k pairs left[left_start + k] with right[right_start + k].
    """

    left_start: int
    right_start: int
    distances: tuple[float, ...]  # MCQ per position, degrees
    gaps: tuple[int, ...] = ()  # Offsets bridged by gap tolerance

    def __post_init__(self):
        object.__setattr__(self, "distances", tuple(float(d) for d in self.distances))
        object.__setattr__(self, "gaps", tuple(sorted(self.gaps)))

    @property
    def length(self) -> int:
        return len(self.distances)

    @property
    def left_end(self) -> int:
        """Last left index (inclusive)."""
        return self.left_start + self.length - 1

    @property
    def right_end(self) -> int:
        """Last right index (inclusive)."""
        return self.right_start + self.length - 1

    @property
    def score(self) -> float:
        """Mean MCQ over matched (non-bridged) positions."""
        gaps = set(self.gaps)
        matched = [d for k, d in enumerate(self.distances) if k not in gaps]
        if not matched:
            return float(np.mean(self.distances))
        return float(np.mean(matched))

    @property
    def pairs(self) -> list[tuple[int, int]]:
        """(left_index, right_index) pairs in order."""
        return [(self.left_start + k, self.right_start + k) for k in range(self.length)]

    def overlaps(self, other: "Fragment", side: Side = Side.LEFT) -> bool:
        """Whether the fragments share any index on the given side."""
        if side is Side.LEFT:
            return self.left_start <= other.left_end and other.left_start <= self.left_end
        return self.right_start <= other.right_end and other.right_start <= self.right_end

    def swapped(self) -> "Fragment":
        """Same fragment with the roles of left and right exchanged."""
        return Fragment(self.right_start, self.left_start, self.distances, self.gaps)

    def __str__(self) -> str:
        return (
            f"[{self.left_start}-{self.left_end}] ~ [{self.right_start}-{self.right_end}] "
            f"({self.length} residues, MCQ {self.score:.2f})"
        )


@dataclass(frozen=True)
class SelectionMatch:
    """Fragments found between two selections.

    Fragments are ordered by left start. The selections are the caller's
    objects; the match only refers to them.
    """

    left: Selection
    right: Selection
    angle_types: tuple[AngleType, ...]
    fragments: tuple[Fragment, ...] = ()
    config: MatcherConfig = field(default_factory=MatcherConfig)
    status: MatchStatus = MatchStatus.EMPTY

    def __post_init__(self):
        object.__setattr__(
            self,
            "fragments",
            tuple(sorted(self.fragments, key=lambda f: (f.left_start, f.right_start))),
        )

    @property
    def is_empty(self) -> bool:
        return not self.fragments

    @property
    def fragment_count(self) -> int:
        return len(self.fragments)

    @property
    def aligned_length(self) -> int:
        """Total number of matched positions over all fragments."""
        return sum(f.length for f in self.fragments)

    @property
    def score(self) -> Optional[float]:
        """Length-weighted mean of fragment scores, None without fragments."""
        if not self.fragments:
            return None
        lengths = np.array([f.length for f in self.fragments], dtype=float)
        scores = np.array([f.score for f in self.fragments])
        return float(np.sum(lengths * scores) / np.sum(lengths))

    @property
    def residue_mapping(self) -> list[tuple[int, int]]:
        """(left_index, right_index) for every matched position."""
        return [pair for fragment in self.fragments for pair in fragment.pairs]

    def selection(self, side: Side) -> Selection:
        return self.left if side is Side.LEFT else self.right

    def to_ordered_residue_mapping(self, side: Side) -> list[ResidueId]:
        """Matched residues of one side, in fragment order.

        Args:
            side: Side.LEFT or Side.RIGHT.

        Returns:
            ResidueId list, one per matched position.
        """
        selection = self.selection(side)
        column = 0 if side is Side.LEFT else 1
        return [selection[pair[column]].residue_id for pair in self.residue_mapping]

    def swapped(self) -> "SelectionMatch":
        """Same match with left and right exchanged."""
        return SelectionMatch(
            left=self.right,
            right=self.left,
            angle_types=self.angle_types,
            fragments=tuple(f.swapped() for f in self.fragments),
            config=self.config,
            status=self.status,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """One row per matched position."""
        rows = []
        for number, fragment in enumerate(self.fragments, start=1):
            gaps = set(fragment.gaps)
            for offset, (i, j) in enumerate(fragment.pairs):
                left_id = self.left[i].residue_id
                right_id = self.right[j].residue_id
                rows.append({
                    "fragment": number,
                    "left_index": i,
                    "right_index": j,
                    "left_residue": str(left_id),
                    "left_name": left_id.name,
                    "right_residue": str(right_id),
                    "right_name": right_id.name,
                    "mcq": fragment.distances[offset],
                    "bridged": offset in gaps,
                })
        columns = [
            "fragment", "left_index", "right_index", "left_residue", "left_name",
            "right_residue", "right_name", "mcq", "bridged",
        ]
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> dict:
        """Plain-data summary for JSON export."""
        return {
            "left": self.left.label,
            "right": self.right.label,
            "status": self.status.value,
            "angle_types": [t.display_name for t in self.angle_types],
            "config": self.config.to_dict(),
            "score": self.score,
            "fragment_count": self.fragment_count,
            "aligned_length": self.aligned_length,
            "fragments": [
                {
                    "left_start": str(self.left[f.left_start].residue_id),
                    "left_end": str(self.left[f.left_end].residue_id),
                    "right_start": str(self.right[f.right_start].residue_id),
                    "right_end": str(self.right[f.right_end].residue_id),
                    "length": f.length,
                    "score": f.score,
                    "distances": list(f.distances),
                    "bridged_left_indices": [f.left_start + k for k in f.gaps],
                }
                for f in self.fragments
            ],
        }
