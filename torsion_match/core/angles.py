"""Torsion angle types, values and the main-angle catalog.

Angle types are a single enum tagged with their molecule class. Atom
definitions used to compute them from coordinates live in lookup tables
keyed by the enum member.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import numpy as np


class MoleculeClass(Enum):
    """Chemical class a residue (and its torsion angles) belongs to."""

    PROTEIN = "protein"
    RNA = "rna"


class AngleType(Enum):
    """Backbone torsion angle kinds, each bound to one molecule class."""

    # Protein backbone
    PHI = ("phi", MoleculeClass.PROTEIN)
    PSI = ("psi", MoleculeClass.PROTEIN)
    OMEGA = ("omega", MoleculeClass.PROTEIN)

    # RNA backbone and glycosidic bond
    ALPHA = ("alpha", MoleculeClass.RNA)
    BETA = ("beta", MoleculeClass.RNA)
    GAMMA = ("gamma", MoleculeClass.RNA)
    DELTA = ("delta", MoleculeClass.RNA)
    EPSILON = ("epsilon", MoleculeClass.RNA)
    ZETA = ("zeta", MoleculeClass.RNA)
    CHI = ("chi", MoleculeClass.RNA)

    # Ribose ring
    NU0 = ("nu0", MoleculeClass.RNA)
    NU1 = ("nu1", MoleculeClass.RNA)
    NU2 = ("nu2", MoleculeClass.RNA)
    NU3 = ("nu3", MoleculeClass.RNA)
    NU4 = ("nu4", MoleculeClass.RNA)
    PSEUDOPHASE_PUCKER = ("P", MoleculeClass.RNA)

    def __init__(self, display_name: str, molecule: MoleculeClass):
        self.display_name = display_name
        self.molecule = molecule

    @classmethod
    def from_name(cls, name: str) -> "AngleType":
        """Look up an angle type by enum name or display name (case-insensitive)."""
        key = name.strip()
        for member in cls:
            if key.upper() == member.name or key.lower() == member.display_name.lower():
                return member
        raise ValueError(f"Unknown torsion angle type: {name!r}")

    def __str__(self) -> str:
        return self.display_name


# (atom name, residue offset) quadruples; offset -1/+1 refers to the
# covalently linked neighbour in the same chain segment.
TORSION_ATOMS: Mapping[AngleType, tuple[tuple[str, int], ...]] = MappingProxyType({
    AngleType.PHI: (("C", -1), ("N", 0), ("CA", 0), ("C", 0)),
    AngleType.PSI: (("N", 0), ("CA", 0), ("C", 0), ("N", 1)),
    AngleType.OMEGA: (("CA", 0), ("C", 0), ("N", 1), ("CA", 1)),
    AngleType.ALPHA: (("O3'", -1), ("P", 0), ("O5'", 0), ("C5'", 0)),
    AngleType.BETA: (("P", 0), ("O5'", 0), ("C5'", 0), ("C4'", 0)),
    AngleType.GAMMA: (("O5'", 0), ("C5'", 0), ("C4'", 0), ("C3'", 0)),
    AngleType.DELTA: (("C5'", 0), ("C4'", 0), ("C3'", 0), ("O3'", 0)),
    AngleType.EPSILON: (("C4'", 0), ("C3'", 0), ("O3'", 0), ("P", 1)),
    AngleType.ZETA: (("C3'", 0), ("O3'", 0), ("P", 1), ("O5'", 1)),
    AngleType.NU0: (("C4'", 0), ("O4'", 0), ("C1'", 0), ("C2'", 0)),
    AngleType.NU1: (("O4'", 0), ("C1'", 0), ("C2'", 0), ("C3'", 0)),
    AngleType.NU2: (("C1'", 0), ("C2'", 0), ("C3'", 0), ("C4'", 0)),
    AngleType.NU3: (("C2'", 0), ("C3'", 0), ("C4'", 0), ("O4'", 0)),
    AngleType.NU4: (("C3'", 0), ("C4'", 0), ("O4'", 0), ("C1'", 0)),
})

# Chi depends on the base: purines O4'-C1'-N9-C4, pyrimidines O4'-C1'-N1-C2
CHI_PURINE_ATOMS = (("O4'", 0), ("C1'", 0), ("N9", 0), ("C4", 0))
CHI_PYRIMIDINE_ATOMS = (("O4'", 0), ("C1'", 0), ("N1", 0), ("C2", 0))


def normalize_degrees(value: float) -> float:
    """Map any finite angle in degrees into [0, 360)."""
    normalized = float(value) % 360.0
    # -1e-20 % 360.0 rounds to 360.0
    if normalized >= 360.0:
        return 0.0
    return normalized


@dataclass(frozen=True)
class AngleValue:
    """A torsion angle value in degrees, or undefined (None)."""

    angle_type: AngleType
    value: Optional[float] = None

    def __post_init__(self):
        if self.value is None:
            return
        if np.isnan(self.value):
            object.__setattr__(self, "value", None)
        else:
            object.__setattr__(self, "value", normalize_degrees(self.value))

    @property
    def is_defined(self) -> bool:
        """Whether the angle could be computed for the residue."""
        return self.value is not None

    @classmethod
    def undefined(cls, angle_type: AngleType) -> "AngleValue":
        return cls(angle_type, None)


@dataclass(frozen=True)
class ResidueAngles:
    """Immutable mapping of angle type to value for one residue."""

    values: Mapping[AngleType, AngleValue] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def from_degrees(cls, angles: Mapping[AngleType, Optional[float]]) -> "ResidueAngles":
        """Build from a plain {AngleType: degrees-or-None} mapping."""
        return cls({t: AngleValue(t, v) for t, v in angles.items()})

    def get(self, angle_type: AngleType) -> AngleValue:
        """Return the value for an angle type, undefined when absent."""
        return self.values.get(angle_type, AngleValue.undefined(angle_type))

    def __getitem__(self, angle_type: AngleType) -> AngleValue:
        return self.get(angle_type)

    def __len__(self) -> int:
        return len(self.values)

    def degrees(self, angle_types: Iterable[AngleType]) -> np.ndarray:
        """Angle values as a float array, NaN where undefined."""
        return np.array(
            [
                np.nan if (v := self.get(t).value) is None else v
                for t in angle_types
            ],
            dtype=float,
        )

    def defined_count(self, angle_types: Iterable[AngleType]) -> int:
        """Number of requested angle types with a defined value."""
        return sum(1 for t in angle_types if self.get(t).is_defined)


@dataclass(frozen=True)
class AngleCatalog:
    """Default comparison angle sets per molecule class.

    Constructed explicitly and passed around as a value; there is no
    module-level registry to mutate.
    """

    main: Mapping[MoleculeClass, tuple[AngleType, ...]]

    def __post_init__(self):
        for molecule, angle_types in self.main.items():
            for angle_type in angle_types:
                if angle_type.molecule is not molecule:
                    raise ValueError(
                        f"{angle_type.name} belongs to {angle_type.molecule.value}, "
                        f"not {molecule.value}"
                    )
        object.__setattr__(
            self, "main", MappingProxyType({m: tuple(a) for m, a in self.main.items()})
        )

    @classmethod
    def default(cls) -> "AngleCatalog":
        """Catalog with the standard main angles for proteins and RNA."""
        return cls({
            MoleculeClass.PROTEIN: (AngleType.PHI, AngleType.PSI, AngleType.OMEGA),
            MoleculeClass.RNA: (
                AngleType.ALPHA,
                AngleType.BETA,
                AngleType.GAMMA,
                AngleType.DELTA,
                AngleType.EPSILON,
                AngleType.ZETA,
                AngleType.CHI,
                AngleType.PSEUDOPHASE_PUCKER,
            ),
        })

    def main_angles(self, *molecules: MoleculeClass) -> tuple[AngleType, ...]:
        """Main angles of the given molecule classes, in argument order."""
        result: list[AngleType] = []
        for molecule in molecules:
            result.extend(self.main.get(molecule, ()))
        return tuple(result)

    def all_main_angles(self) -> tuple[AngleType, ...]:
        """RNA main angles followed by protein main angles."""
        return self.main_angles(MoleculeClass.RNA, MoleculeClass.PROTEIN)

    def parse(self, selection: str) -> tuple[AngleType, ...]:
        """Parse a user angle selection.

        Accepts ``main`` (all main angles), a molecule class name
        (``protein``/``rna``) or a comma-separated list of angle names.
        Duplicates are dropped, first occurrence wins.
        """
        result: list[AngleType] = []
        for token in selection.split(","):
            token = token.strip().lower()
            if not token:
                continue
            if token == "main":
                result.extend(self.all_main_angles())
            elif token in {m.value for m in MoleculeClass}:
                result.extend(self.main_angles(MoleculeClass(token)))
            else:
                result.append(AngleType.from_name(token))
        return tuple(dict.fromkeys(result))
