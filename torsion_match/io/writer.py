"""PDB export of matched fragments for external viewers.

The output holds two models: model 1 with residues of the left structure
and model 2 with residues of the right structure, so that a viewer script
can color them independently.
"""

from io import StringIO
from pathlib import Path

from Bio.PDB import PDBIO
from Bio.PDB.Chain import Chain
from Bio.PDB.Model import Model
from Bio.PDB.Structure import Structure

from torsion_match.core.match import SelectionMatch, Side
from torsion_match.io.parser import MolecularStructure


class FragmentPDBWriter:
    """Write matched residues of two structures as a two-model PDB."""

    def __init__(self, left: MolecularStructure, right: MolecularStructure):
        """Initialize the writer.

        Args:
            left: Structure the match's left selection was built from.
            right: Structure the match's right selection was built from.
        """
        self.left = left
        self.right = right

    def build_structure(self, match: SelectionMatch, aligned_only: bool = True) -> Structure:
        """Assemble a Biopython structure with one model per side.

        Args:
            match: Result of FragmentMatcher.match.
            aligned_only: Only matched residues when True, every selected
                residue otherwise.

        Returns:
            New structure; residues are copies of the source residues.
        """
        output = Structure(f"{self.left.name}_{self.right.name}")

        for model_id, (side, source) in enumerate(((Side.LEFT, self.left), (Side.RIGHT, self.right))):
            model = Model(model_id, serial_num=model_id + 1)
            output.add(model)

            if aligned_only:
                residue_ids = match.to_ordered_residue_mapping(side)
            else:
                residue_ids = match.selection(side).residue_ids

            for residue_id in residue_ids:
                if residue_id.chain_id not in model:
                    model.add(Chain(residue_id.chain_id))
                chain = model[residue_id.chain_id]

                residue = source.find_residue(residue_id)
                if residue.id in chain:
                    continue
                chain.add(residue.copy())

        return output

    def to_pdb(self, match: SelectionMatch, aligned_only: bool = True) -> str:
        """Render the match as PDB text.

        Args:
            match: Result of FragmentMatcher.match.
            aligned_only: Only matched residues when True.

        Returns:
            PDB-formatted string with MODEL 1 (left) and MODEL 2 (right).
        """
        pdb_io = PDBIO()
        pdb_io.set_structure(self.build_structure(match, aligned_only))
        handle = StringIO()
        pdb_io.save(handle)
        return handle.getvalue()

    def save(self, match: SelectionMatch, path: str | Path, aligned_only: bool = True) -> None:
        """Write the PDB text to a file."""
        Path(path).write_text(self.to_pdb(match, aligned_only))
