"""PDB and mmCIF loading with torsion angle computation.

Builds Selections from structure files: polymer residues of the first
model, grouped by chain, each annotated with its backbone torsion angles.
Residues whose angles cannot be computed (missing atoms, chain termini,
chain breaks) are kept with undefined values.
"""

import logging
import math
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence

import pandas as pd
from Bio.PDB import MMCIFParser, PDBParser
from Bio.PDB.Residue import Residue
from Bio.PDB.Structure import Structure
from Bio.PDB.vectors import calc_dihedral

from torsion_match.core.angles import (
    CHI_PURINE_ATOMS,
    CHI_PYRIMIDINE_ATOMS,
    TORSION_ATOMS,
    AngleType,
    MoleculeClass,
    ResidueAngles,
)
from torsion_match.core.selection import ResidueId, SelectedResidue, Selection

logger = logging.getLogger(__name__)

# sin(36°) + sin(72°), from the Altona-Sundaralingam pseudorotation formula
_PUCKER_DENOMINATOR = math.sin(math.radians(36.0)) + math.sin(math.radians(72.0))


@dataclass
class MolecularStructure:
    """A parsed structure file."""

    name: str
    biopython_structure: Structure = field(repr=False)
    source_path: Optional[Path] = None

    @property
    def model(self):
        """First model of the structure."""
        return self.biopython_structure.child_list[0]

    @property
    def chain_ids(self) -> list[str]:
        return [chain.id for chain in self.model]

    def find_residue(self, residue_id: ResidueId) -> Residue:
        """Look up the Biopython residue for a ResidueId.

        Raises:
            KeyError: If the residue is not in the first model.
        """
        chain = self.model[residue_id.chain_id]
        for residue in chain:
            hetflag, number, icode = residue.id
            if hetflag == "W":
                continue
            if number == residue_id.number and icode.strip() == residue_id.insertion_code:
                return residue
        raise KeyError(f"{residue_id} not found in {self.name}")


class StructureLoader:
    """Load structure files and compute per-residue torsion angles."""

    # Standard amino acids plus modified ones written as HETATM records
    AMINO_ACIDS = frozenset({
        "ALA", "CYS", "ASP", "GLU", "PHE", "GLY", "HIS", "ILE", "LYS", "LEU",
        "MET", "ASN", "PRO", "GLN", "ARG", "SER", "THR", "VAL", "TRP", "TYR",
        "MSE",  # Selenomethionine
        "UNK",  # Unknown
    })

    # Nucleotides (DNA residues share the sugar-phosphate backbone angles)
    NUCLEOTIDES = frozenset({"A", "C", "G", "U", "DA", "DC", "DG", "DT", "DU"})
    PURINES = frozenset({"A", "G", "DA", "DG"})

    # Maximum length (Å) of the covalent link between consecutive residues
    BOND_CUTOFF = 2.0

    # Atoms forming the inter-residue link: (previous residue, current residue)
    LINK_ATOMS = {
        MoleculeClass.PROTEIN: ("C", "N"),
        MoleculeClass.RNA: ("O3'", "P"),
    }

    def __init__(self, quiet: bool = True):
        """Initialize the structure loader.

        Args:
            quiet: Suppress BioPython parser warnings.
        """
        self.pdb_parser = PDBParser(QUIET=quiet)
        self.cif_parser = MMCIFParser(QUIET=quiet)

    def _get_parser(self, path: Path):
        suffix = path.suffix.lower()
        if suffix in (".cif", ".mmcif"):
            return self.cif_parser
        return self.pdb_parser

    def load(self, path: str | Path) -> MolecularStructure:
        """Load a PDB or mmCIF file.

        Args:
            path: Path to PDB or mmCIF file.

        Returns:
            MolecularStructure wrapping the Biopython structure.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the file contains no model.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Structure file not found: {path}")

        structure = self._get_parser(path).get_structure(path.stem, str(path))
        if len(structure) == 0:
            raise ValueError(f"No model found in {path}")

        logger.debug("Loaded %s with chains %s", path, [c.id for c in structure.child_list[0]])
        return MolecularStructure(name=path.stem, biopython_structure=structure, source_path=path)

    def load_selection(
        self,
        path: str | Path,
        chains: Optional[Sequence[str]] = None,
    ) -> tuple[MolecularStructure, Selection]:
        """Load a file and select chains from it in one step."""
        structure = self.load(path)
        return structure, self.select(structure, chains)

    def molecule_class(self, residue: Residue) -> Optional[MoleculeClass]:
        """Classify a residue, None for ligands, water and unknown residues.

        Modified polymer residues such as selenomethionine come as HETATM
        records (hetero flag ``H_MSE``) and are classified by name.
        """
        resname = residue.get_resname().strip()
        hetflag = residue.id[0]
        if hetflag not in (" ", f"H_{resname}"):
            return None
        if resname in self.AMINO_ACIDS:
            return MoleculeClass.PROTEIN
        if resname in self.NUCLEOTIDES:
            return MoleculeClass.RNA
        return None

    def select(
        self,
        structure: MolecularStructure,
        chains: Optional[Sequence[str]] = None,
    ) -> Selection:
        """Build a Selection from chains of the first model.

        Args:
            structure: Loaded structure.
            chains: Chain identifiers in the desired order; all chains when
                None or empty.

        Returns:
            Selection of the polymer residues with their torsion angles.

        Raises:
            ValueError: If a requested chain does not exist.
        """
        model = structure.model
        available = structure.chain_ids
        chain_ids = list(chains) if chains else available
        missing = [c for c in chain_ids if c not in available]
        if missing:
            raise ValueError(
                f"Chains {missing} not found in {structure.name} (available: {available})"
            )

        residues: list[SelectedResidue] = []
        for chain_id in chain_ids:
            residues.extend(self._select_chain(model[chain_id]))

        if not residues:
            warnings.warn(f"No protein or nucleic acid residues selected from {structure.name}")

        return Selection(name=structure.name, residues=tuple(residues))

    def _select_chain(self, chain) -> list[SelectedResidue]:
        polymer = []
        for residue in chain:
            molecule = self.molecule_class(residue)
            if molecule is not None:
                polymer.append((residue, molecule))

        # Split into covalently connected segments
        segments: list[list[tuple[Residue, MoleculeClass]]] = []
        for item in polymer:
            if segments and self._linked(segments[-1][-1], item):
                segments[-1].append(item)
            else:
                segments.append([item])

        selected = []
        for segment_idx, segment in enumerate(segments):
            segment_residues = [residue for residue, _ in segment]
            for k, (residue, molecule) in enumerate(segment):
                _, number, icode = residue.id
                selected.append(
                    SelectedResidue(
                        residue_id=ResidueId(
                            chain_id=chain.id,
                            number=number,
                            insertion_code=icode.strip(),
                            name=residue.get_resname().strip(),
                        ),
                        molecule=molecule,
                        angles=self.residue_angles(segment_residues, k, molecule),
                        segment=segment_idx,
                    )
                )
        return selected

    def _linked(
        self,
        previous: tuple[Residue, MoleculeClass],
        current: tuple[Residue, MoleculeClass],
    ) -> bool:
        prev_residue, prev_molecule = previous
        residue, molecule = current
        if prev_molecule is not molecule:
            return False
        prev_atom, atom = self.LINK_ATOMS[molecule]
        if prev_atom not in prev_residue or atom not in residue:
            return False
        return (prev_residue[prev_atom] - residue[atom]) <= self.BOND_CUTOFF

    def residue_angles(
        self,
        segment: Sequence[Residue],
        index: int,
        molecule: MoleculeClass,
    ) -> ResidueAngles:
        """Compute all torsion angles of one residue.

        Args:
            segment: Covalently connected residues containing the residue.
            index: Position of the residue in the segment.
            molecule: Molecule class of the residue.

        Returns:
            ResidueAngles with undefined entries where atoms are missing.
        """
        degrees: dict[AngleType, Optional[float]] = {}
        for angle_type, atoms in TORSION_ATOMS.items():
            if angle_type.molecule is molecule:
                degrees[angle_type] = self._dihedral(segment, index, atoms)

        if molecule is MoleculeClass.RNA:
            resname = segment[index].get_resname().strip()
            chi_atoms = CHI_PURINE_ATOMS if resname in self.PURINES else CHI_PYRIMIDINE_ATOMS
            degrees[AngleType.CHI] = self._dihedral(segment, index, chi_atoms)
            degrees[AngleType.PSEUDOPHASE_PUCKER] = pseudophase_pucker(
                [degrees[t] for t in (
                    AngleType.NU0, AngleType.NU1, AngleType.NU2, AngleType.NU3, AngleType.NU4,
                )]
            )

        return ResidueAngles.from_degrees(degrees)

    @staticmethod
    def _dihedral(
        segment: Sequence[Residue],
        index: int,
        atoms: Iterable[tuple[str, int]],
    ) -> Optional[float]:
        vectors = []
        for atom_name, offset in atoms:
            position = index + offset
            if not 0 <= position < len(segment):
                return None
            residue = segment[position]
            if atom_name not in residue:
                return None
            vectors.append(residue[atom_name].get_vector())
        return math.degrees(calc_dihedral(*vectors))

    @staticmethod
    def torsion_table(
        selection: Selection,
        angle_types: Optional[Sequence[AngleType]] = None,
    ) -> pd.DataFrame:
        """Tabulate torsion angles of a selection.

        Args:
            selection: Selection to tabulate.
            angle_types: Columns to include; every angle type of the molecule
                classes present when None.

        Returns:
            DataFrame with one row per residue, angles in degrees (NaN when
            undefined).
        """
        if angle_types is None:
            molecules = selection.molecules()
            angle_types = [t for t in AngleType if t.molecule in molecules]

        rows = []
        for residue in selection:
            rid = residue.residue_id
            row = {
                "chain_id": rid.chain_id,
                "residue_number": rid.number,
                "insertion_code": rid.insertion_code,
                "residue_name": rid.name,
                "molecule": residue.molecule.value,
                "segment": residue.segment,
            }
            for angle_type, value in zip(angle_types, residue.angles.degrees(angle_types)):
                row[angle_type.display_name] = value
            rows.append(row)

        columns = [
            "chain_id", "residue_number", "insertion_code", "residue_name",
            "molecule", "segment",
        ] + [t.display_name for t in angle_types]
        return pd.DataFrame(rows, columns=columns)


def pseudophase_pucker(nus: Sequence[Optional[float]]) -> Optional[float]:
    """Ribose pseudorotation phase angle from the five ring torsions.

    Args:
        nus: nu0..nu4 in degrees (signed), any of them possibly None.

    Returns:
        Phase angle P in degrees within [0, 360), or None if a ring
        torsion is missing.
    """
    if len(nus) != 5 or any(nu is None for nu in nus):
        return None
    nu0, nu1, nu2, nu3, nu4 = nus
    phase = math.degrees(
        math.atan2((nu4 + nu1) - (nu3 + nu0), 2.0 * nu2 * _PUCKER_DENOMINATOR)
    )
    return phase % 360.0
