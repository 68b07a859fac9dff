# trusslab/presets.py
"""
PRESET BRIDGES: DETERMINISTIC FIXTURE LAYOUTS
=============================================

Three hard-coded layouts that an editor can load with one key press and that
the tests use as fixtures:

    0  Warren truss   deck + top chord + alternating diagonals
    1  Arch           parabolic steel arch carrying the deck on hangers
    2  Simple beam    a plain road deck between two supports

COORDINATES:
------------
Screen convention, +y points DOWN. The deck sits on y = 0 and everything
above it has negative y. Supports are the two deck end nodes.

    Warren truss (6 panels):

          o---o---o---o---o---o         top chord, y = -depth
         / \ / \ / \ / \ / \ / \
        o---o---o---o---o---o---o       deck, y = 0
        ^                       ^
      fixed                   fixed

Loading a preset always clears the structure first, so the same index
always produces the same nodes, elements and ids relative to each other.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from .materials import Material
from .structure import Structure

logger = logging.getLogger(__name__)


@dataclass
class PresetLayout:
    """
    Ids produced by a preset builder.

    Parameters:
    -----------
    name : str
        Preset name
    deck_nodes : List[int]
        Deck node ids, left to right
    support_nodes : List[int]
        Fixed node ids
    elements : List[int]
        All element ids created
    """
    name: str
    deck_nodes: List[int] = field(default_factory=list)
    support_nodes: List[int] = field(default_factory=list)
    elements: List[int] = field(default_factory=list)


def _build_deck(structure: Structure, layout: PresetLayout, span: float, panels: int) -> None:
    for i in range(panels + 1):
        fixed = i == 0 or i == panels
        nid = structure.add_node((span * i / panels, 0.0), fixed=fixed)
        layout.deck_nodes.append(nid)
        if fixed:
            layout.support_nodes.append(nid)
    for a, b in zip(layout.deck_nodes[:-1], layout.deck_nodes[1:]):
        layout.elements.append(structure.add_element(a, b, Material.ROAD))


def build_warren_truss(
    structure: Structure,
    span: float = 12.0,
    panels: int = 6,
    depth: float = 2.0,
) -> PresetLayout:
    """
    Warren truss: a top node above the middle of every deck panel, joined
    to both panel ends by wooden diagonals and to its neighbours by a
    steel top chord.
    """
    if span <= 0 or depth <= 0:
        raise ValueError(f"span and depth must be positive, got {span}, {depth}")
    if panels < 1:
        raise ValueError(f"panels must be at least 1, got {panels}")

    layout = PresetLayout(name="Warren truss")
    _build_deck(structure, layout, span, panels)

    panel = span / panels
    top_nodes = [
        structure.add_node((panel * (i + 0.5), -depth))
        for i in range(panels)
    ]
    for a, b in zip(top_nodes[:-1], top_nodes[1:]):
        layout.elements.append(structure.add_element(a, b, Material.STEEL))
    for i, top in enumerate(top_nodes):
        layout.elements.append(structure.add_element(layout.deck_nodes[i], top, Material.WOOD))
        layout.elements.append(structure.add_element(top, layout.deck_nodes[i + 1], Material.WOOD))
    return layout


def build_arch(
    structure: Structure,
    span: float = 12.0,
    panels: int = 6,
    rise: float = 3.0,
) -> PresetLayout:
    """
    Parabolic arch springing from the two supports:

        y(x) = -rise · (1 - ((x - span/2) / (span/2))²)

    Each interior deck node hangs from the arch node directly above it by a
    wooden hanger. Quadrilateral panels get one wooden diagonal each, sloping
    towards mid-span, so the deck cannot sway.
    """
    if span <= 0 or rise <= 0:
        raise ValueError(f"span and rise must be positive, got {span}, {rise}")
    if panels < 2:
        raise ValueError(f"an arch needs at least 2 panels, got {panels}")

    layout = PresetLayout(name="Arch")
    _build_deck(structure, layout, span, panels)

    half = span / 2.0
    arch_nodes = [layout.deck_nodes[0]]
    for i in range(1, panels):
        x = span * i / panels
        y = -rise * (1.0 - ((x - half) / half) ** 2)
        arch_nodes.append(structure.add_node((x, y)))
    arch_nodes.append(layout.deck_nodes[-1])

    for a, b in zip(arch_nodes[:-1], arch_nodes[1:]):
        layout.elements.append(structure.add_element(a, b, Material.STEEL))
    for i in range(1, panels):
        layout.elements.append(structure.add_element(arch_nodes[i], layout.deck_nodes[i], Material.WOOD))
    for i in range(1, panels - 1):
        x_mid = span * (i + 0.5) / panels
        if x_mid < half:
            a, b = layout.deck_nodes[i], arch_nodes[i + 1]
        else:
            a, b = arch_nodes[i], layout.deck_nodes[i + 1]
        layout.elements.append(structure.add_element(a, b, Material.WOOD))
    return layout


def build_simple_beam(
    structure: Structure,
    span: float = 12.0,
    panels: int = 6,
) -> PresetLayout:
    """A bare road deck between two supports; it sags until its own tension carries it."""
    if span <= 0:
        raise ValueError(f"span must be positive, got {span}")
    if panels < 1:
        raise ValueError(f"panels must be at least 1, got {panels}")
    layout = PresetLayout(name="Simple beam")
    _build_deck(structure, layout, span, panels)
    return layout


PRESETS: Dict[int, Callable[[Structure], PresetLayout]] = {
    0: build_warren_truss,
    1: build_arch,
    2: build_simple_beam,
}


def load_preset(structure: Structure, index: int) -> PresetLayout:
    """Clear `structure` and rebuild preset `index` (0 Warren truss, 1 arch, 2 simple beam)."""
    try:
        builder = PRESETS[index]
    except KeyError:
        raise ValueError(f"Unknown preset index {index}. Options: {sorted(PRESETS)}") from None
    structure.clear()
    layout = builder(structure)
    logger.info(
        "Loaded preset %d (%s): %d nodes, %d elements, %.1f kg",
        index, layout.name, structure.n_nodes, structure.n_elements, structure.total_mass(),
    )
    return layout
