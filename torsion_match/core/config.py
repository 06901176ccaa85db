"""Matcher configuration and validation."""

from dataclasses import dataclass

from torsion_match.core.circular import WORST_SCORE

DEFAULT_THRESHOLD = 60.0  # Maximum per-position MCQ in degrees
DEFAULT_MIN_LENGTH = 3  # Shortest fragment kept, in residues
DEFAULT_GAP_TOLERANCE = 1  # Consecutive above-threshold positions bridged


class ConfigurationError(ValueError):
    """Invalid matcher configuration, raised before any computation."""


@dataclass(frozen=True)
class MatcherConfig:
    """Options controlling fragment detection.

    Attributes:
        threshold: Maximum MCQ (degrees) for a position to count as matching.
        min_length: Minimum number of positions in a reported fragment.
        gap_tolerance: How many consecutive above-threshold positions an
            extension may bridge when a matching position follows.
        n_jobs: Parallel jobs for the distance matrix (1 = sequential,
            -1 = all CPUs), as accepted by joblib.
        one_to_one: Also reject fragments sharing a right index with a
            better one, so that every residue is matched at most once.
    """

    threshold: float = DEFAULT_THRESHOLD
    min_length: int = DEFAULT_MIN_LENGTH
    gap_tolerance: int = DEFAULT_GAP_TOLERANCE
    n_jobs: int = 1
    one_to_one: bool = False

    def __post_init__(self):
        if not isinstance(self.threshold, (int, float)) or isinstance(self.threshold, bool):
            raise ConfigurationError(f"threshold must be a number, got {self.threshold!r}")
        if not 0 < self.threshold <= WORST_SCORE:
            raise ConfigurationError(
                f"threshold must be in (0, {WORST_SCORE:g}] degrees, got {self.threshold}"
            )
        if not isinstance(self.min_length, int) or self.min_length < 1:
            raise ConfigurationError(
                f"min_length must be a positive integer, got {self.min_length!r}"
            )
        if not isinstance(self.gap_tolerance, int) or self.gap_tolerance < 0:
            raise ConfigurationError(
                f"gap_tolerance must be a non-negative integer, got {self.gap_tolerance!r}"
            )
        if not isinstance(self.n_jobs, int) or self.n_jobs == 0:
            raise ConfigurationError(f"n_jobs must be a non-zero integer, got {self.n_jobs!r}")
        if not isinstance(self.one_to_one, bool):
            raise ConfigurationError(f"one_to_one must be a boolean, got {self.one_to_one!r}")

    def to_dict(self) -> dict:
        return {
            "threshold": self.threshold,
            "min_length": self.min_length,
            "gap_tolerance": self.gap_tolerance,
            "n_jobs": self.n_jobs,
            "one_to_one": self.one_to_one,
        }
