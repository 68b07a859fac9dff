# trusslab/materials.py
"""
MATERIALS: CLOSED CATALOG OF MEMBER PROPERTIES
==============================================

PURPOSE:
--------
Every element in a structure is made of exactly one of three materials.
Instead of storing E, A, density and strengths on each element, an element
stores a `Material` tag and looks the numbers up in `MATERIALS`.

ENGINEERING CONTEXT:
--------------------
- density : mass per unit LENGTH of the member (kg/m), so an element of
  rest length L0 weighs density × L0. The cross-section is already folded in.
- youngs_modulus (E) : axial stiffness of the material (Pa)
- cross_section_area (A) : member area (m²), axial stiffness k = E·A/L0
- yield_strength : |stress| above this marks the member as yielded (Pa)
- ultimate_strength : |stress| above this breaks the member (Pa)

The values are scaled for interactive, explicitly integrated simulation
rather than copied from a design code: real steel (E = 210 GPa) on a 1 m
member would need a timestep ~100x smaller than 1/1200 s. The ratios between
materials are kept plausible (steel stiffest and strongest, road deck heavy).

Stability rule of thumb for a member of length L between two lumped masses:

    omega_max² ≈ 4·E·A / (density·L²)      and we need omega_max·dt < 2
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class MaterialProperties:
    """
    Immutable property record for one material.

    Parameters:
    -----------
    name : str
        Human-readable name
    density : float
        Mass per unit length (kg/m)
    youngs_modulus : float
        Young's modulus E (Pa)
    cross_section_area : float
        Cross-sectional area A (m²)
    yield_strength : float
        Yield threshold on |stress| (Pa)
    ultimate_strength : float
        Breaking threshold on |stress| (Pa)
    """
    name: str
    density: float
    youngs_modulus: float
    cross_section_area: float
    yield_strength: float
    ultimate_strength: float

    def __post_init__(self):
        if self.density <= 0:
            raise ValueError(f"{self.name}: density must be positive, got {self.density}")
        if self.youngs_modulus <= 0:
            raise ValueError(f"{self.name}: youngs_modulus must be positive, got {self.youngs_modulus}")
        if self.cross_section_area <= 0:
            raise ValueError(f"{self.name}: cross_section_area must be positive, got {self.cross_section_area}")
        if self.yield_strength <= 0:
            raise ValueError(f"{self.name}: yield_strength must be positive, got {self.yield_strength}")
        if self.ultimate_strength < self.yield_strength:
            raise ValueError(
                f"{self.name}: ultimate_strength ({self.ultimate_strength}) must be >= "
                f"yield_strength ({self.yield_strength})"
            )

    @property
    def axial_rigidity(self) -> float:
        """E·A (N)."""
        return self.youngs_modulus * self.cross_section_area

    def stiffness(self, rest_length: float) -> float:
        """Axial spring stiffness k = E·A / L0 (N/m)."""
        return self.axial_rigidity / rest_length

    def mass(self, rest_length: float) -> float:
        """Member mass density · L0 (kg)."""
        return self.density * rest_length


class Material(Enum):
    """The closed set of materials an element can be made of."""
    WOOD = "wood"
    STEEL = "steel"
    ROAD = "road"

    @property
    def properties(self) -> MaterialProperties:
        return MATERIALS[self]

    @classmethod
    def parse(cls, value) -> "Material":
        """Resolve a Material from a Material, its value ("steel") or its name ("STEEL")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            try:
                return cls(key.lower())
            except ValueError:
                pass
            try:
                return cls[key.upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown material: {value!r}. Options: {[m.name for m in cls]}")


# ============================================================================
# MATERIAL DEFINITIONS
# ============================================================================

MATERIALS = {
    # Light and soft; good for bracing, first to yield
    Material.WOOD: MaterialProperties(
        name="Wood",
        density=8.0,  # kg/m
        youngs_modulus=4.0e8,  # Pa
        cross_section_area=0.01,  # m²  -> EA = 4 MN
        yield_strength=6.0e6,  # Pa  -> 60 kN
        ultimate_strength=9.0e6,  # Pa  -> 90 kN
    ),

    # Stiff and strong; chords and arches
    Material.STEEL: MaterialProperties(
        name="Steel",
        density=39.25,  # kg/m
        youngs_modulus=2.0e9,  # Pa
        cross_section_area=0.005,  # m²  -> EA = 10 MN
        yield_strength=2.5e7,  # Pa  -> 125 kN
        ultimate_strength=4.0e7,  # Pa  -> 200 kN
    ),

    # Heavy deck segments that vehicles drive on
    Material.ROAD: MaterialProperties(
        name="Road",
        density=48.0,  # kg/m
        youngs_modulus=5.0e8,  # Pa
        cross_section_area=0.02,  # m²  -> EA = 10 MN
        yield_strength=1.0e7,  # Pa  -> 200 kN
        ultimate_strength=1.5e7,  # Pa  -> 300 kN
    ),
}
