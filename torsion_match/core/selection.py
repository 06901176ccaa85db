"""Ordered, chain-grouped residue selections used as matcher input."""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping, Optional, Sequence

import numpy as np

from torsion_match.core.angles import AngleType, MoleculeClass, ResidueAngles


@dataclass(frozen=True)
class ResidueId:
    """Identifier of a residue within a structure."""

    chain_id: str
    number: int
    insertion_code: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.chain_id}.{self.number}{self.insertion_code.strip()}"


@dataclass(frozen=True)
class SelectedResidue:
    """One position of a Selection."""

    residue_id: ResidueId
    molecule: MoleculeClass
    angles: ResidueAngles
    segment: int = 0  # Index of the covalently connected run within the chain


@dataclass(frozen=True)
class Selection:
    """Named, ordered list of residues with their torsion angles.

    Order is positional along the chains. Two neighbouring positions are
    chain-connected only if they share both chain identifier and segment.
    """

    name: str
    residues: tuple[SelectedResidue, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "residues", tuple(self.residues))

    def __len__(self) -> int:
        return len(self.residues)

    def __iter__(self) -> Iterator[SelectedResidue]:
        return iter(self.residues)

    def __getitem__(self, index: int) -> SelectedResidue:
        return self.residues[index]

    @property
    def is_empty(self) -> bool:
        return not self.residues

    @property
    def chain_ids(self) -> list[str]:
        """Chain identifiers in order of first appearance."""
        return list(dict.fromkeys(r.residue_id.chain_id for r in self.residues))

    @property
    def residue_ids(self) -> list[ResidueId]:
        return [r.residue_id for r in self.residues]

    @property
    def label(self) -> str:
        """Name with chain identifiers, e.g. ``1EHZ.A``."""
        return f"{self.name}.{''.join(self.chain_ids)}"

    def is_connected(self, index: int, next_index: int) -> bool:
        """Whether two adjacent positions belong to the same chain segment."""
        if abs(next_index - index) != 1:
            return False
        if min(index, next_index) < 0 or max(index, next_index) >= len(self.residues):
            return False
        a = self.residues[index]
        b = self.residues[next_index]
        return a.residue_id.chain_id == b.residue_id.chain_id and a.segment == b.segment

    def angle_array(self, angle_types: Sequence[AngleType]) -> np.ndarray:
        """Angle values as an (n_residues, n_types) array, NaN where undefined."""
        if not self.residues:
            return np.empty((0, len(angle_types)), dtype=float)
        return np.vstack([r.angles.degrees(angle_types) for r in self.residues])

    def molecules(self) -> set[MoleculeClass]:
        """Molecule classes present in the selection."""
        return {r.molecule for r in self.residues}

    @classmethod
    def from_angle_table(
        cls,
        name: str,
        rows: Iterable[Mapping],
        molecule: Optional[MoleculeClass] = None,
    ) -> "Selection":
        """Build a selection from plain records.

        Each row needs ``chain_id``, ``number`` and ``angles`` (a mapping of
        AngleType to degrees or None); ``insertion_code``, ``name``,
        ``molecule`` and ``segment`` are optional. When ``molecule`` is not
        given per row or as argument it is inferred from the angle types.

        Args:
            name: Selection name (structure name).
            rows: Residue records in chain order.
            molecule: Default molecule class for rows without one.

        Returns:
            Selection with the residues in the given order.
        """
        residues = []
        for row in rows:
            angles = row.get("angles", {})
            row_molecule = row.get("molecule", molecule)
            if row_molecule is None:
                row_molecule = _infer_molecule(angles)
            residues.append(
                SelectedResidue(
                    residue_id=ResidueId(
                        chain_id=str(row["chain_id"]),
                        number=int(row["number"]),
                        insertion_code=row.get("insertion_code", ""),
                        name=row.get("name", ""),
                    ),
                    molecule=row_molecule,
                    angles=ResidueAngles.from_degrees(angles),
                    segment=int(row.get("segment", 0)),
                )
            )
        return cls(name=name, residues=tuple(residues))


def _infer_molecule(angles: Mapping[AngleType, Optional[float]]) -> MoleculeClass:
    molecules = {t.molecule for t in angles}
    if len(molecules) == 1:
        return molecules.pop()
    return MoleculeClass.PROTEIN
