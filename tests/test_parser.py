"""Tests for structure loading and torsion angle computation."""

import math
from unittest.mock import Mock

import numpy as np
import pytest

from torsion_match.core.angles import AngleCatalog, AngleType, MoleculeClass
from torsion_match.core.matcher import FragmentMatcher
from torsion_match.core.selection import ResidueId
from torsion_match.io.parser import StructureLoader, pseudophase_pucker

from conftest import PROTEIN_ANGLES, PURINE_BASE, pdb_atom_line, write_protein_pdb, write_rna_pdb


@pytest.fixture
def loader():
    return StructureLoader()


class TestStructureLoader:
    """Test loading files and building selections."""

    def test_load(self, loader, protein_pdb):
        structure = loader.load(protein_pdb)
        assert structure.name == "model"
        assert structure.chain_ids == ["A"]
        assert structure.source_path == protein_pdb

    def test_load_missing_file(self, loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            loader.load(tmp_path / "missing.pdb")

    def test_select_all_chains(self, loader, protein_pdb):
        _, selection = loader.load_selection(protein_pdb)
        assert len(selection) == 5
        assert selection.label == "model.A"
        assert selection.residue_ids[0] == ResidueId("A", 1, "", "ALA")
        assert selection.molecules() == {MoleculeClass.PROTEIN}

    def test_unknown_chain(self, loader, protein_pdb):
        structure = loader.load(protein_pdb)
        with pytest.raises(ValueError, match="not found"):
            loader.select(structure, ["Z"])

    def test_chain_order_follows_request(self, loader, tmp_path):
        path = tmp_path / "two.pdb"
        write_protein_pdb(tmp_path / "a.pdb", 3, chain="A")
        write_protein_pdb(tmp_path / "b.pdb", 3, chain="B")
        a_lines = [l for l in (tmp_path / "a.pdb").read_text().splitlines() if l.startswith("ATOM")]
        b_lines = [l for l in (tmp_path / "b.pdb").read_text().splitlines() if l.startswith("ATOM")]
        path.write_text("\n".join(a_lines + ["TER"] + b_lines + ["TER", "END"]) + "\n")

        structure = loader.load(path)
        selection = loader.select(structure, ["B", "A"])

        assert selection.chain_ids == ["B", "A"]
        assert not selection.is_connected(2, 3)

    def test_find_residue(self, loader, protein_pdb):
        structure = loader.load(protein_pdb)
        residue = structure.find_residue(ResidueId("A", 3))
        assert residue.get_resname() == "ALA"
        with pytest.raises(KeyError):
            structure.find_residue(ResidueId("A", 99))


class TestTorsionAngles:
    """Test angles computed from coordinates."""

    def test_terminal_residues_have_undefined_angles(self, loader, protein_pdb):
        _, selection = loader.load_selection(protein_pdb)
        first = selection[0].angles
        last = selection[-1].angles

        assert not first[AngleType.PHI].is_defined
        assert first[AngleType.PSI].is_defined
        assert first[AngleType.OMEGA].is_defined
        assert last[AngleType.PHI].is_defined
        assert not last[AngleType.PSI].is_defined
        assert not last[AngleType.OMEGA].is_defined

    def test_inner_residues_fully_defined(self, loader, protein_pdb):
        _, selection = loader.load_selection(protein_pdb)
        for residue in selection.residues[1:-1]:
            assert residue.angles.defined_count(PROTEIN_ANGLES) == 3

    def test_angles_within_range(self, loader, protein_pdb):
        _, selection = loader.load_selection(protein_pdb)
        values = selection.angle_array(PROTEIN_ANGLES)
        defined = values[~np.isnan(values)]
        assert ((defined >= 0.0) & (defined < 360.0)).all()

    def test_chain_break_starts_new_segment(self, loader, tmp_path):
        path = write_protein_pdb(tmp_path / "broken.pdb", 5, break_after=1)
        _, selection = loader.load_selection(path)

        assert [r.segment for r in selection] == [0, 0, 1, 1, 1]
        assert not selection.is_connected(1, 2)
        # No angle spans the break
        assert not selection[1].angles[AngleType.PSI].is_defined
        assert not selection[2].angles[AngleType.PHI].is_defined

    def test_torsion_table(self, loader, protein_pdb):
        _, selection = loader.load_selection(protein_pdb)
        table = loader.torsion_table(selection)

        assert list(table.columns[-3:]) == ["phi", "psi", "omega"]
        assert len(table) == 5
        assert math.isnan(table.loc[0, "phi"])
        assert table["molecule"].unique().tolist() == ["protein"]

    def test_self_match(self, loader, protein_pdb):
        """A structure matched against itself gives one full-length fragment."""
        _, selection = loader.load_selection(protein_pdb)

        result = FragmentMatcher(PROTEIN_ANGLES, threshold=10.0).match(selection, selection)

        assert [f.length for f in result.fragments] == [5]
        assert result.score == pytest.approx(0.0, abs=1e-6)


class TestMoleculeClass:
    """Test residue classification."""

    @pytest.mark.parametrize(
        "resname, hetflag, expected",
        [
            ("ALA", " ", MoleculeClass.PROTEIN),
            ("MSE", "H_MSE", MoleculeClass.PROTEIN),
            ("G", " ", MoleculeClass.RNA),
            ("DT", " ", MoleculeClass.RNA),
            ("HOH", "W", None),
            ("ATP", "H_ATP", None),
            ("XYZ", " ", None),
        ],
    )
    def test_classification(self, loader, resname, hetflag, expected):
        residue = Mock()
        residue.id = (hetflag, 1, " ")
        residue.get_resname.return_value = resname
        assert loader.molecule_class(residue) is expected


class TestModifiedResidues:
    """HETATM polymer residues stay in place."""

    def test_selenomethionine_kept_in_chain(self, loader, tmp_path):
        path = write_protein_pdb(tmp_path / "mse.pdb", 5, selenomethionine=(2,))
        structure, selection = loader.load_selection(path)

        assert len(selection) == 5
        assert [r.residue_id.name for r in selection] == ["ALA", "ALA", "MSE", "ALA", "ALA"]
        assert [r.segment for r in selection] == [0] * 5
        assert selection[2].angles.defined_count(PROTEIN_ANGLES) == 3
        assert structure.find_residue(selection[2].residue_id).get_resname() == "MSE"

    def test_ligand_ignored(self, loader, tmp_path):
        path = write_protein_pdb(tmp_path / "model.pdb", 3)
        ligand = pdb_atom_line(99, "C1", "LIG", "A", 50, (20.0, 20.0, 20.0), "C", record="HETATM")
        path.write_text(path.read_text().replace("TER\n", ligand + "\nTER\n"))

        _, selection = loader.load_selection(path)

        assert len(selection) == 3


class TestNucleicAcidAngles:
    """Test RNA torsions computed from coordinates."""

    def test_selection(self, loader, rna_pdb):
        _, selection = loader.load_selection(rna_pdb)
        assert [r.residue_id.name for r in selection] == ["G", "C", "A"]
        assert selection.molecules() == {MoleculeClass.RNA}
        assert [r.segment for r in selection] == [0, 0, 0]

    def test_backbone_angles_across_neighbours(self, loader, rna_pdb):
        """Alpha needs the previous O3', epsilon and zeta the next P."""
        _, selection = loader.load_selection(rna_pdb)
        first, middle, last = (r.angles for r in selection)

        assert not first[AngleType.ALPHA].is_defined
        assert first[AngleType.EPSILON].is_defined
        assert first[AngleType.ZETA].is_defined
        assert middle.defined_count(
            (AngleType.ALPHA, AngleType.BETA, AngleType.GAMMA,
             AngleType.DELTA, AngleType.EPSILON, AngleType.ZETA)
        ) == 6
        assert last[AngleType.ALPHA].is_defined
        assert not last[AngleType.EPSILON].is_defined
        assert not last[AngleType.ZETA].is_defined

    def test_chi_and_pucker(self, loader, rna_pdb):
        _, selection = loader.load_selection(rna_pdb)
        for residue in selection:
            assert residue.angles[AngleType.CHI].is_defined
            assert residue.angles[AngleType.PSEUDOPHASE_PUCKER].is_defined
            assert not residue.angles[AngleType.PHI].is_defined

    def test_chi_uses_base_specific_atoms(self, loader, tmp_path):
        """A pyrimidine carrying purine atom names has no chi."""
        path = write_rna_pdb(tmp_path / "mixed.pdb", "GU", base_atoms=PURINE_BASE)
        _, selection = loader.load_selection(path)

        assert selection[0].angles[AngleType.CHI].is_defined
        assert not selection[1].angles[AngleType.CHI].is_defined

    def test_phosphate_link_break(self, loader, tmp_path):
        path = write_rna_pdb(tmp_path / "broken.pdb", "GCA", break_after=1)
        _, selection = loader.load_selection(path)

        assert [r.segment for r in selection] == [0, 0, 1]
        assert not selection[1].angles[AngleType.ZETA].is_defined
        assert not selection[2].angles[AngleType.ALPHA].is_defined

    def test_self_match(self, loader, rna_pdb):
        _, selection = loader.load_selection(rna_pdb)
        rna_angles = AngleCatalog.default().main_angles(MoleculeClass.RNA)

        result = FragmentMatcher(rna_angles, threshold=10.0).match(selection, selection)

        assert [f.pairs for f in result.fragments] == [[(0, 0), (1, 1), (2, 2)]]


class TestPseudophasePucker:
    """Test the ribose pseudorotation phase angle."""

    def test_zero_numerator_positive_nu2(self):
        assert pseudophase_pucker([10.0, 10.0, 20.0, 10.0, 10.0]) == pytest.approx(0.0)

    def test_zero_numerator_negative_nu2(self):
        assert pseudophase_pucker([10.0, 10.0, -20.0, 10.0, 10.0]) == pytest.approx(180.0)

    def test_missing_ring_torsion(self):
        assert pseudophase_pucker([1.0, 2.0, None, 4.0, 5.0]) is None

    def test_c3_endo_region(self):
        """Typical A-form ring torsions give a C3'-endo phase near 18°."""
        phase = pseudophase_pucker([2.0, -25.0, 37.0, -36.0, 22.0])
        assert 0.0 <= phase < 40.0