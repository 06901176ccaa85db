"""
Shared test fixtures and helpers for building selections and structure files
"""

import numpy as np
import pytest

from torsion_match.core.angles import AngleType, MoleculeClass
from torsion_match.core.selection import Selection

PROTEIN_ANGLES = (AngleType.PHI, AngleType.PSI, AngleType.OMEGA)


def distinct_angles(k):
    """Angles of the k-th residue of a series whose members differ by > 40° on average."""
    return (
        (10.0 + 40.0 * k) % 360.0,
        (200.0 + 35.0 * k) % 360.0,
        (100.0 + 50.0 * k) % 360.0,
    )


def make_selection(name, angle_rows, chain_ids=None, segments=None, angle_types=PROTEIN_ANGLES):
    """Build a protein selection from per-residue angle tuples (None = undefined)."""
    rows = []
    for idx, values in enumerate(angle_rows):
        if values is None:
            values = (None,) * len(angle_types)
        rows.append({
            "chain_id": chain_ids[idx] if chain_ids else "A",
            "number": idx + 1,
            "name": "ALA",
            "angles": dict(zip(angle_types, values)),
            "segment": segments[idx] if segments else 0,
        })
    return Selection.from_angle_table(name, rows, molecule=MoleculeClass.PROTEIN)


def blank_selection(name, n):
    """Single-chain selection of n residues without any defined angle."""
    return make_selection(name, [None] * n)


def pdb_atom_line(serial, atom, resname, chain, resseq, xyz, element, record="ATOM"):
    """Format a fixed-column PDB ATOM or HETATM record."""
    x, y, z = xyz
    return (
        f"{record:<6s}{serial:5d} {' ' + atom:<4s} {resname:>3s} {chain:1s}{resseq:4d}    "
        f"{x:8.3f}{y:8.3f}{z:8.3f}{1.0:6.2f}{20.0:6.2f}          {element:>2s}"
    )


# Backbone of one residue; consecutive residues are shifted by 3.8 Å along x
BACKBONE = (
    ("N", (0.0, 0.0, 0.0), "N"),
    ("CA", (1.2, 0.9, 0.0), "C"),
    ("C", (2.4, 0.1, 0.5), "C"),
    ("O", (2.5, -1.1, 0.6), "O"),
)


def write_protein_pdb(path, n_residues, chain="A", break_after=None, selenomethionine=()):
    """Write a small poly-alanine backbone.

    Args:
        path: Output path.
        n_residues: Number of residues.
        chain: Chain identifier.
        break_after: Residue index after which the chain is broken by
            moving the remaining residues 10 Å away.
        selenomethionine: Residue indices written as HETATM MSE records.
    """
    lines = []
    serial = 1
    for idx in range(n_residues):
        shift = 3.8 * idx
        if break_after is not None and idx > break_after:
            shift += 10.0
        resname, record = ("MSE", "HETATM") if idx in selenomethionine else ("ALA", "ATOM")
        for atom, (x, y, z), element in BACKBONE:
            lines.append(
                pdb_atom_line(serial, atom, resname, chain, idx + 1, (x + shift, y, z), element, record)
            )
            serial += 1
    lines.append("TER")
    lines.append("END")
    path.write_text("\n".join(lines) + "\n")
    return path


# Sugar-phosphate backbone of one nucleotide; the next nucleotide is shifted
# so that its P sits 1.54 Å from this O3'
NUCLEOTIDE_BACKBONE = (
    ("P", (0.0, 0.0, 0.0), "P"),
    ("O5'", (1.2, 0.8, 0.3), "O"),
    ("C5'", (1.5, 2.1, -0.3), "C"),
    ("C4'", (2.9, 2.4, 0.2), "C"),
    ("O4'", (3.1, 3.8, 0.0), "O"),
    ("C3'", (3.4, 1.6, 1.4), "C"),
    ("O3'", (4.8, 1.4, 1.2), "O"),
    ("C2'", (4.2, 2.7, 2.0), "C"),
    ("C1'", (4.4, 3.9, 0.9), "C"),
)
NUCLEOTIDE_SHIFT = (5.8, 0.8, 2.2)
# Glycosidic nitrogen and the following base atom
PURINE_BASE = (("N9", (5.8, 4.3, 0.7), "N"), ("C4", (6.5, 5.0, 1.6), "C"))
PYRIMIDINE_BASE = (("N1", (5.8, 4.3, 0.7), "N"), ("C2", (6.5, 5.0, 1.6), "C"))


def write_rna_pdb(path, sequence, chain="A", break_after=None, base_atoms=None):
    """Write a short RNA strand.

    Args:
        path: Output path.
        sequence: One residue name per nucleotide, e.g. "GCA".
        chain: Chain identifier.
        break_after: Residue index after which the strand is broken by
            moving the remaining nucleotides 10 Å away.
        base_atoms: Base atoms used for every nucleotide instead of the
            purine or pyrimidine ones matching its name.
    """
    lines = []
    serial = 1
    for idx, resname in enumerate(sequence):
        dx, dy, dz = (idx * step for step in NUCLEOTIDE_SHIFT)
        if break_after is not None and idx > break_after:
            dx += 10.0
        base = base_atoms or (PURINE_BASE if resname in "AG" else PYRIMIDINE_BASE)
        for atom, (x, y, z), element in NUCLEOTIDE_BACKBONE + base:
            lines.append(pdb_atom_line(serial, atom, resname, chain, idx + 1, (x + dx, y + dy, z + dz), element))
            serial += 1
    lines.append("TER")
    lines.append("END")
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def rna_pdb(tmp_path):
    """Three-nucleotide strand G-C-A."""
    return write_rna_pdb(tmp_path / "rna.pdb", "GCA")


@pytest.fixture
def protein_pdb(tmp_path):
    """Five-residue protein backbone file."""
    return write_protein_pdb(tmp_path / "model.pdb", 5)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)
