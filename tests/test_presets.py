# File: tests/test_presets.py
"""
Preset bridges: deterministic layouts used as fixtures elsewhere.
"""

import numpy as np
import pytest

from trusslab.materials import Material
from trusslab.presets import PRESETS, build_arch, build_warren_truss, load_preset
from trusslab.structure import Structure


@pytest.mark.parametrize("index, n_nodes, n_elements", [
    (0, 13, 23),
    (1, 12, 21),
    (2, 7, 6),
])
def test_preset_sizes(index, n_nodes, n_elements):
    s = Structure()
    layout = load_preset(s, index)
    assert s.n_nodes == n_nodes
    assert s.n_elements == n_elements
    assert sorted(layout.elements) == sorted(s.element_ids)
    assert len(layout.deck_nodes) == 7


@pytest.mark.parametrize("index", sorted(PRESETS))
def test_preset_supports_and_deck(index):
    """Two fixed supports at the deck ends; the deck is all ROAD at y = 0."""
    s = Structure()
    layout = load_preset(s, index)

    assert layout.support_nodes == [layout.deck_nodes[0], layout.deck_nodes[-1]]
    assert int(s.fixed.sum()) == 2
    np.testing.assert_allclose(s.node(layout.support_nodes[0]).position, [0.0, 0.0])
    np.testing.assert_allclose(s.node(layout.support_nodes[1]).position, [12.0, 0.0])

    deck_elements = layout.elements[:6]
    for eid in deck_elements:
        assert s.element(eid).material is Material.ROAD
    for nid in layout.deck_nodes:
        assert s.node(nid).y == 0.0
    # everything off the deck is above it (negative y)
    assert np.all(s.positions[:, 1] <= 0.0)


def test_presets_are_deterministic():
    first, second = Structure(), Structure()
    for index in PRESETS:
        load_preset(first, index)
        load_preset(second, index)
        np.testing.assert_array_equal(first.positions, second.positions)
        np.testing.assert_array_equal(first.element_nodes, second.element_nodes)
        assert first.materials == second.materials


def test_loading_replaces_previous_structure():
    s = Structure()
    stray = s.add_node((50.0, 50.0))
    s.add_load(stray, 10.0)
    load_preset(s, 2)
    assert not s.has_node(stray)
    assert s.n_loads == 0
    load_preset(s, 0)
    assert s.n_nodes == 13


def test_unknown_index_raises():
    s = Structure()
    s.add_node((0.0, 0.0))
    with pytest.raises(ValueError):
        load_preset(s, 7)
    assert s.n_nodes == 1


def test_warren_materials():
    s = Structure()
    layout = build_warren_truss(s)
    materials = [s.element(eid).material for eid in layout.elements]
    assert materials.count(Material.ROAD) == 6
    assert materials.count(Material.STEEL) == 5
    assert materials.count(Material.WOOD) == 12


def test_arch_follows_parabola():
    s = Structure()
    layout = build_arch(s, rise=3.0)
    arch_nodes = [nid for nid in s.node_ids if nid not in layout.deck_nodes]
    for nid in arch_nodes:
        x, y = s.node(nid).position
        assert y == pytest.approx(-3.0 * (1.0 - ((x - 6.0) / 6.0) ** 2))
    crown = min(arch_nodes, key=lambda nid: s.node(nid).y)
    assert s.node(crown).position == pytest.approx([6.0, -3.0])


def test_builders_validate_geometry():
    with pytest.raises(ValueError):
        build_warren_truss(Structure(), depth=0.0)
    with pytest.raises(ValueError):
        build_arch(Structure(), panels=1)
