"""Torsion-angle fragment matching between two residue selections.

The matcher compares every left residue with every right residue by MCQ,
seeds fragments at positions under the threshold, grows them along the
diagonal and keeps the best non-overlapping ones.
"""

import logging
import threading
from typing import Callable, Iterable, Optional, Sequence

import numpy as np
from joblib import Parallel, delayed

from torsion_match.core.angles import AngleType
from torsion_match.core.circular import CircularMetric
from torsion_match.core.config import ConfigurationError, MatcherConfig
from torsion_match.core.match import Fragment, MatchStatus, SelectionMatch, Side
from torsion_match.core.selection import Selection

logger = logging.getLogger(__name__)


class FragmentMatcher:
    """Find similar fragments of two selections by torsion angles."""

    def __init__(
        self,
        angle_types: Iterable[AngleType],
        config: Optional[MatcherConfig] = None,
        **options,
    ):
        """Initialize the matcher.

        Args:
            angle_types: Torsion angle types to compare.
            config: Matcher configuration. Mutually exclusive with options.
            **options: MatcherConfig fields (threshold, min_length,
                gap_tolerance, n_jobs, one_to_one) when no config is given.

        Raises:
            ConfigurationError: If the angle types or options are invalid.
        """
        self.angle_types = tuple(dict.fromkeys(angle_types))
        if not self.angle_types:
            raise ConfigurationError("At least one torsion angle type is required")
        if any(not isinstance(t, AngleType) for t in self.angle_types):
            raise ConfigurationError(f"Not torsion angle types: {self.angle_types}")

        if config is not None and options:
            raise ConfigurationError("Pass either a MatcherConfig or keyword options, not both")
        if config is None:
            try:
                config = MatcherConfig(**options)
            except TypeError as e:
                raise ConfigurationError(str(e)) from e

        self.config = config
        self.metric = CircularMetric()

    def match(
        self,
        left: Selection,
        right: Selection,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> SelectionMatch:
        """Match two selections.

        Args:
            left: First selection.
            right: Second selection.
            cancel_event: Optional event; when set, the computation stops at
                the next row and returns a CANCELLED result.
            progress_callback: Optional callback(current, total) called per
                finished distance-matrix row, in row order.

        Returns:
            SelectionMatch; empty (status EMPTY) when nothing matches.
        """
        if left.is_empty or right.is_empty:
            logger.info(
                "Nothing to match: %s has %d residues, %s has %d residues",
                left.name, len(left), right.name, len(right),
            )
            return self._result(left, right, (), MatchStatus.EMPTY)

        self._check_applicable(left)
        self._check_applicable(right)

        logger.info(
            "Matching %s (%d residues) against %s (%d residues) over %d angle types",
            left.label, len(left), right.label, len(right), len(self.angle_types),
        )

        matrix = self.distance_matrix(left, right, cancel_event, progress_callback)
        if matrix is None:
            logger.info("Matching %s against %s cancelled", left.label, right.label)
            return self._result(left, right, (), MatchStatus.CANCELLED)

        fragments = self.find_fragments(matrix, left, right)
        status = MatchStatus.MATCHED if fragments else MatchStatus.EMPTY
        logger.info("Found %d fragments between %s and %s", len(fragments), left.label, right.label)
        return self._result(left, right, fragments, status)

    def distance_matrix(
        self,
        left: Selection,
        right: Selection,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Optional[np.ndarray]:
        """Compute MCQ for every (left, right) residue pair.

        Args:
            left: First selection.
            right: Second selection.
            cancel_event: Checked before every row.
            progress_callback: Optional callback(current, total).

        Returns:
            Array of shape (len(left), len(right)) in degrees, or None if
            cancelled.
        """
        left_angles = left.angle_array(self.angle_types)
        right_angles = right.angle_array(self.angle_types)
        n_rows = len(left_angles)

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        def compute_row(row: np.ndarray) -> Optional[np.ndarray]:
            if cancelled():
                return None
            return self.metric.distance_row(row, right_angles)

        if self.config.n_jobs == 1:
            results = (compute_row(row) for row in left_angles)
        else:
            # Threads share the cancel event; numpy releases the GIL
            results = Parallel(n_jobs=self.config.n_jobs, prefer="threads", return_as="generator")(
                delayed(compute_row)(row) for row in left_angles
            )

        rows = []
        for result in results:
            if result is None:
                return None
            rows.append(result)
            if progress_callback:
                progress_callback(len(rows), n_rows)
        if cancelled():
            return None

        if not rows:
            return np.empty((0, len(right_angles)))
        return np.vstack(rows)

    def find_anchors(self, matrix: np.ndarray) -> list[tuple[int, int]]:
        """Positions with MCQ under the threshold, in row-major order."""
        return [(int(i), int(j)) for i, j in np.argwhere(matrix <= self.config.threshold)]

    def find_fragments(
        self,
        matrix: np.ndarray,
        left: Selection,
        right: Selection,
    ) -> list[Fragment]:
        """Turn a distance matrix into the final fragment list.

        Args:
            matrix: MCQ matrix from distance_matrix.
            left: Selection the rows refer to.
            right: Selection the columns refer to.

        Returns:
            Non-overlapping fragments of at least min_length, by left start.
        """
        anchors = self.find_anchors(matrix)
        candidates = self.extend_anchors(matrix, left, right, anchors)
        logger.debug("%d anchors grew into %d candidate fragments", len(anchors), len(candidates))

        long_enough = [f for f in candidates if f.length >= self.config.min_length]
        fragments = self.resolve_overlaps(long_enough, self.config.one_to_one)
        return [f for f in fragments if f.length >= self.config.min_length]

    def extend_anchors(
        self,
        matrix: np.ndarray,
        left: Selection,
        right: Selection,
        anchors: Sequence[tuple[int, int]],
    ) -> list[Fragment]:
        """Grow every anchor into a maximal fragment.

        Anchors already inside a grown fragment would grow into the same
        fragment and are skipped.
        """
        covered: set[tuple[int, int]] = set()
        fragments = []
        for anchor in anchors:
            if anchor in covered:
                continue
            fragment = self.extend(matrix, left, right, anchor)
            covered.update(fragment.pairs)
            fragments.append(fragment)
        return fragments

    def extend(
        self,
        matrix: np.ndarray,
        left: Selection,
        right: Selection,
        anchor: tuple[int, int],
    ) -> Fragment:
        """Grow a single anchor in both directions along its diagonal.

        Args:
            matrix: MCQ matrix.
            left: Row selection, used for chain connectivity.
            right: Column selection, used for chain connectivity.
            anchor: (i, j) position under the threshold.

        Returns:
            Fragment containing the anchor.
        """
        i, j = anchor
        back, back_gaps = self._walk(matrix, left, right, i, j, -1)
        forward, forward_gaps = self._walk(matrix, left, right, i, j, 1)

        length = forward - back + 1
        left_start = i + back
        right_start = j + back
        distances = [matrix[left_start + k, right_start + k] for k in range(length)]
        gaps = [offset - back for offset in back_gaps + forward_gaps]
        return Fragment(left_start, right_start, distances, gaps)

    def _walk(
        self,
        matrix: np.ndarray,
        left: Selection,
        right: Selection,
        i: int,
        j: int,
        step: int,
    ) -> tuple[int, list[int]]:
        """Walk from (i, j) by step; return the farthest matching offset and bridged offsets."""
        threshold = self.config.threshold
        reach = 0
        bridged: list[int] = []
        pending: list[int] = []
        offset = 0

        while True:
            ci, cj = i + offset, j + offset
            if not (left.is_connected(ci, ci + step) and right.is_connected(cj, cj + step)):
                break
            offset += step
            if matrix[i + offset, j + offset] <= threshold:
                reach = offset
                bridged.extend(pending)
                pending = []
            else:
                pending.append(offset)
                if len(pending) > self.config.gap_tolerance:
                    break

        return reach, bridged

    @staticmethod
    def resolve_overlaps(
        candidates: Iterable[Fragment],
        one_to_one: bool = False,
    ) -> list[Fragment]:
        """Keep the best fragments so that no left residue is matched twice.

        Candidates are ranked by mean score (lower first), then length
        (longer first), then left start and right start (earlier first).
        A candidate sharing a left index with an already kept fragment is
        dropped; with one_to_one, so is one sharing a right index.

        Exact ties on score and length are broken by left position, so
        swapping the inputs may keep the mirror of a different fragment.
        Without one_to_one the rule is asymmetric as well: a right residue
        may appear in several fragments, a left residue in only one.

        Args:
            candidates: Fragments to choose from.
            one_to_one: Also reject candidates overlapping on the right.

        Returns:
            Kept fragments sorted by left start.
        """
        sides = (Side.LEFT, Side.RIGHT) if one_to_one else (Side.LEFT,)
        ranked = sorted(
            candidates,
            key=lambda f: (f.score, -f.length, f.left_start, f.right_start),
        )
        kept: list[Fragment] = []
        for candidate in ranked:
            if any(candidate.overlaps(other, side) for other in kept for side in sides):
                logger.debug("Dropping overlapping fragment %s", candidate)
                continue
            kept.append(candidate)
        return sorted(kept, key=lambda f: (f.left_start, f.right_start))

    def _check_applicable(self, selection: Selection) -> None:
        molecules = selection.molecules()
        if not any(t.molecule in molecules for t in self.angle_types):
            logger.warning(
                "None of the requested angle types apply to %s (%s); all distances are undefined",
                selection.label,
                ", ".join(sorted(m.value for m in molecules)),
            )

    def _result(self, left, right, fragments, status) -> SelectionMatch:
        return SelectionMatch(
            left=left,
            right=right,
            angle_types=self.angle_types,
            fragments=tuple(fragments),
            config=self.config,
            status=status,
        )
