"""Circular distance and MCQ (Mean of Circular Quantities) aggregation.

Distances between torsion angles are measured on the circle:

    d(a, b) = min(|a - b|, 360 - |a - b|)

so that d(359, 1) == 2. Per-residue scores average the defined distances
only; a residue pair with no defined distance at all gets the worst score
(180°) instead of a perfect one.
"""

from typing import Iterable, Optional, Sequence

import numpy as np

from torsion_match.core.angles import AngleType, AngleValue, ResidueAngles

FULL_CIRCLE = 360.0
WORST_SCORE = 180.0  # Largest possible circular distance


class CircularMetric:
    """Circular distance between angles and MCQ aggregation."""

    @staticmethod
    def distance(a: AngleValue, b: AngleValue) -> Optional[float]:
        """Minimal circular difference between two angle values.

        Args:
            a: First angle value.
            b: Second angle value.

        Returns:
            Distance in degrees within [0, 180], or None if either value
            is undefined.
        """
        if a.value is None or b.value is None:
            return None
        return circular_difference(a.value, b.value)

    @staticmethod
    def aggregate(values: Iterable[Optional[float]]) -> float:
        """Mean of the defined distances.

        Undefined entries (None or NaN) are skipped, never counted as zero.

        Args:
            values: Per-angle distances, possibly undefined.

        Returns:
            Mean distance in degrees, or WORST_SCORE when nothing is defined.
        """
        defined = [v for v in values if v is not None and not np.isnan(v)]
        if not defined:
            return WORST_SCORE
        return float(np.mean(defined))

    def residue_distance(
        self,
        left: ResidueAngles,
        right: ResidueAngles,
        angle_types: Sequence[AngleType],
    ) -> float:
        """MCQ between two residues over the requested angle types."""
        return self.aggregate(
            self.distance(left.get(t), right.get(t)) for t in angle_types
        )

    @staticmethod
    def distance_row(row: np.ndarray, others: np.ndarray) -> np.ndarray:
        """MCQ of one residue against many, on NaN-encoded angle arrays.

        Args:
            row: Angles of one residue in degrees, shape (k,).
            others: Angles of the other residues, shape (m, k).

        Returns:
            Array of m MCQ values; WORST_SCORE where no angle pair is defined.
        """
        others = np.atleast_2d(others)
        diff = np.abs(others - row[np.newaxis, :]) % FULL_CIRCLE
        diff = np.minimum(diff, FULL_CIRCLE - diff)

        defined = ~np.isnan(diff)
        counts = defined.sum(axis=1)
        sums = np.where(defined, diff, 0.0).sum(axis=1)

        scores = np.full(len(others), WORST_SCORE)
        np.divide(sums, counts, out=scores, where=counts > 0)
        return scores


def circular_difference(a: float, b: float) -> float:
    """Minimal circular difference of two angles in degrees, in [0, 180]."""
    diff = abs(a - b) % FULL_CIRCLE
    return min(diff, FULL_CIRCLE - diff)
