"""Report generation for fragment matching results.

Provides CSV, JSON and text reports for a SelectionMatch.
"""

import json
from datetime import datetime
from pathlib import Path

import pandas as pd

from torsion_match import __version__
from torsion_match.core.match import MatchStatus, SelectionMatch

NO_MATCH_MESSAGE = "The selected structures have no matching fragments in common"


class MatchReporter:
    """Generate reports from a fragment match."""

    def __init__(self, match: SelectionMatch):
        """Initialize the reporter.

        Args:
            match: Result of FragmentMatcher.match.
        """
        self.match = match

    def fragment_table(self) -> pd.DataFrame:
        """One row per fragment."""
        match = self.match
        rows = []
        for number, fragment in enumerate(match.fragments, start=1):
            rows.append({
                "fragment": number,
                "left_start": str(match.left[fragment.left_start].residue_id),
                "left_end": str(match.left[fragment.left_end].residue_id),
                "right_start": str(match.right[fragment.right_start].residue_id),
                "right_end": str(match.right[fragment.right_end].residue_id),
                "length": fragment.length,
                "mcq": fragment.score,
                "bridged": len(fragment.gaps),
            })
        columns = [
            "fragment", "left_start", "left_end", "right_start", "right_end",
            "length", "mcq", "bridged",
        ]
        return pd.DataFrame(rows, columns=columns)

    def position_table(self) -> pd.DataFrame:
        """One row per matched residue pair."""
        return self.match.to_dataframe()

    def to_csv(self, path: str | Path, per_position: bool = True, **kwargs) -> None:
        """Save results to CSV file.

        Args:
            path: Output file path.
            per_position: Write matched residue pairs; fragments otherwise.
            **kwargs: Additional arguments to pandas to_csv.
        """
        table = self.position_table() if per_position else self.fragment_table()
        table.to_csv(path, index=False, **kwargs)

    def to_json(
        self,
        path: str | Path,
        include_metadata: bool = True,
        **kwargs,
    ) -> None:
        """Save results to JSON file.

        Args:
            path: Output file path.
            include_metadata: Include generation metadata.
            **kwargs: Additional arguments to json.dump.
        """
        output = {"match": self.match.to_dict()}

        if include_metadata:
            output["metadata"] = {
                "generated_at": datetime.now().isoformat(),
                "tool": "torsion_match",
                "version": __version__,
            }

        with open(path, "w") as f:
            json.dump(output, f, indent=2, **kwargs)

    def summary_report(self) -> str:
        """Generate text summary report.

        Returns:
            Formatted text report.
        """
        match = self.match
        lines = [
            "=" * 60,
            "TORSION ANGLE FRAGMENT MATCHING REPORT",
            "=" * 60,
            f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Left:  {match.left.label} ({len(match.left)} residues)",
            f"Right: {match.right.label} ({len(match.right)} residues)",
            f"Angles: {', '.join(t.display_name for t in match.angle_types)}",
            f"Threshold: {match.config.threshold:g}°  "
            f"Min length: {match.config.min_length}  "
            f"Gap tolerance: {match.config.gap_tolerance}",
            "",
            "-" * 60,
            "RESULTS",
            "-" * 60,
        ]

        if match.status is MatchStatus.CANCELLED:
            lines.append("Matching was cancelled")
        elif match.is_empty:
            lines.append(NO_MATCH_MESSAGE)
        else:
            coverage = match.aligned_length / min(len(match.left), len(match.right))
            lines.extend([
                f"Fragments:      {match.fragment_count}",
                f"Aligned length: {match.aligned_length} residues ({coverage:.1%} of shorter)",
                f"Overall MCQ:    {match.score:.2f}°",
                "",
            ])
            for row in self.fragment_table().itertuples(index=False):
                lines.append(
                    f"  #{row.fragment:<3d} {row.left_start:>8s}-{row.left_end:<8s} ~ "
                    f"{row.right_start:>8s}-{row.right_end:<8s} "
                    f"{row.length:4d} res  MCQ {row.mcq:6.2f}°"
                )

        lines.extend([
            "",
            "=" * 60,
        ])

        return "\n".join(lines)
