"""Torsion-angle fragment matching for macromolecular structures.

Compares two protein or RNA structures by their backbone torsion angles
and finds corresponding fragments with low MCQ (Mean of Circular
Quantities) distance.
"""

__version__ = "0.1.0"
__author__ = "Torsion Match"

from torsion_match.core.angles import AngleCatalog, AngleType, AngleValue, MoleculeClass, ResidueAngles
from torsion_match.core.circular import CircularMetric
from torsion_match.core.config import ConfigurationError, MatcherConfig
from torsion_match.core.selection import ResidueId, Selection
from torsion_match.core.match import Fragment, MatchStatus, SelectionMatch, Side
from torsion_match.core.matcher import FragmentMatcher
from torsion_match.io.parser import MolecularStructure, StructureLoader
from torsion_match.io.reporter import MatchReporter
from torsion_match.io.writer import FragmentPDBWriter

__all__ = [
    "AngleCatalog",
    "AngleType",
    "AngleValue",
    "MoleculeClass",
    "ResidueAngles",
    "CircularMetric",
    "ConfigurationError",
    "MatcherConfig",
    "ResidueId",
    "Selection",
    "Fragment",
    "MatchStatus",
    "SelectionMatch",
    "Side",
    "FragmentMatcher",
    "MolecularStructure",
    "StructureLoader",
    "MatchReporter",
    "FragmentPDBWriter",
]
