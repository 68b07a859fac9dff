# trusslab/structure.py
"""
STRUCTURE: ARENA OF NODES, ELEMENTS AND POINT LOADS
===================================================

PURPOSE:
--------
The Structure is the single owner of all truss state. Node and element data
live in parallel numpy arrays (one row per node / element) so that the
integrator can work on whole arrays at once:

    node rows      positions, original_positions, velocities, forces,
                   structural_mass, applied_mass, fixed
    element rows   element_nodes (row indices of endpoints A, B),
                   rest_length, stiffness, element_mass, youngs_modulus,
                   area, yield_strength, ultimate_strength, broken, yielded

IDS vs ROWS:
------------
Callers refer to nodes, elements and loads by integer ids. Ids are handed
out from counters and never reused, so a stale id of a removed node cannot
silently point at a newer node. Rows are compacted on removal; the
id -> row dictionaries are rebuilt whenever rows move.

`Node` and `Element` are thin views: they hold the structure and an id and
read the arrays on access. A view of a removed item raises InvalidReference.

MASS BOOKKEEPING:
-----------------
Node masses are DERIVED state. After every topology edit:

    structural_mass[n] = Σ element_mass[e] / 2   over live elements incident to n
    applied_mass[n]    = Σ load.mass             over live loads on n

Recomputing from the live sets means removing an element or a load always
takes its mass back out, with no accumulated drift.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .elements import (
    element_axial_forces,
    element_lengths,
    element_stress_ratios,
    element_stresses,
    element_strains,
    update_failure_flags,
)
from .errors import DegenerateElement, InvalidOperationState, InvalidReference
from .materials import Material

logger = logging.getLogger(__name__)


_NODE_VECTOR_ARRAYS = ("positions", "original_positions", "velocities", "forces")
_NODE_SCALAR_ARRAYS = ("structural_mass", "applied_mass", "fixed")
_ELEMENT_ARRAYS = (
    "element_nodes",
    "rest_length",
    "stiffness",
    "element_mass",
    "youngs_modulus",
    "area",
    "yield_strength",
    "ultimate_strength",
    "broken",
    "yielded",
)


@dataclass(frozen=True)
class LoadWeight:
    """
    A point mass hung from a node.

    Several loads may target the same node; their masses add up in the
    node's applied_mass.
    """
    id: int
    node_id: int
    mass: float


class Node:
    """Read/write view of one node row."""

    __slots__ = ("_structure", "id")

    def __init__(self, structure: "Structure", node_id: int):
        self._structure = structure
        self.id = node_id

    @property
    def row(self) -> int:
        return self._structure._node_row_of(self.id)

    @property
    def position(self) -> np.ndarray:
        return self._structure.positions[self.row].copy()

    @property
    def original_position(self) -> np.ndarray:
        return self._structure.original_positions[self.row].copy()

    @property
    def displacement(self) -> np.ndarray:
        row = self.row
        return self._structure.positions[row] - self._structure.original_positions[row]

    @property
    def velocity(self) -> np.ndarray:
        return self._structure.velocities[self.row].copy()

    @velocity.setter
    def velocity(self, value) -> None:
        row = self.row
        if self._structure.fixed[row]:
            raise InvalidOperationState(f"Node {self.id} is fixed; its velocity is always zero")
        self._structure.velocities[row] = _as_vector(value, "velocity")

    @property
    def force(self) -> np.ndarray:
        return self._structure.forces[self.row].copy()

    @property
    def mass(self) -> float:
        """Structural mass: half of every incident element's mass (kg)."""
        return float(self._structure.structural_mass[self.row])

    @property
    def applied_mass(self) -> float:
        """Sum of point loads hung from this node (kg)."""
        return float(self._structure.applied_mass[self.row])

    @property
    def total_mass(self) -> float:
        row = self.row
        return float(self._structure.structural_mass[row] + self._structure.applied_mass[row])

    @property
    def fixed(self) -> bool:
        return bool(self._structure.fixed[self.row])

    @property
    def x(self) -> float:
        return float(self._structure.positions[self.row, 0])

    @property
    def y(self) -> float:
        return float(self._structure.positions[self.row, 1])

    def __eq__(self, other):
        return isinstance(other, Node) and other._structure is self._structure and other.id == self.id

    def __hash__(self):
        return hash((id(self._structure), self.id))

    def __repr__(self):
        return f"Node(id={self.id})"


class Element:
    """
    Read-only view of one element row plus its mechanics.

    Sign convention for stress, strain and axial force: tension positive.
    """

    __slots__ = ("_structure", "id")

    def __init__(self, structure: "Structure", element_id: int):
        self._structure = structure
        self.id = element_id

    @property
    def row(self) -> int:
        return self._structure._element_row_of(self.id)

    @property
    def node_a(self) -> int:
        return self._structure.node_ids[self._structure.element_nodes[self.row, 0]]

    @property
    def node_b(self) -> int:
        return self._structure.node_ids[self._structure.element_nodes[self.row, 1]]

    @property
    def material(self) -> Material:
        return self._structure._materials[self.row]

    @property
    def rest_length(self) -> float:
        return float(self._structure.rest_length[self.row])

    @property
    def stiffness(self) -> float:
        return float(self._structure.stiffness[self.row])

    @property
    def mass(self) -> float:
        return float(self._structure.element_mass[self.row])

    @property
    def broken(self) -> bool:
        return bool(self._structure.broken[self.row])

    @property
    def yielded(self) -> bool:
        return bool(self._structure.yielded[self.row])

    def current_length(self) -> float:
        s = self._structure
        a, b = s.element_nodes[self.row]
        delta = s.positions[b] - s.positions[a]
        return float(np.hypot(delta[0], delta[1]))

    def direction(self) -> np.ndarray:
        """Unit vector from endpoint A to endpoint B; zero if the endpoints coincide."""
        s = self._structure
        a, b = s.element_nodes[self.row]
        delta = s.positions[b] - s.positions[a]
        length = np.hypot(delta[0], delta[1])
        if length <= 0.0:
            return np.zeros(2)
        return delta / length

    def strain(self) -> float:
        return float((self.current_length() - self.rest_length) / self.rest_length)

    def stress(self) -> float:
        row = self.row
        return float(self._structure.youngs_modulus[row] * self.strain())

    def axial_force(self) -> float:
        return float(self.stress() * self._structure.area[self.row])

    def stress_ratio(self) -> float:
        return float(abs(self.stress()) / self._structure.ultimate_strength[self.row])

    def check_failure(self) -> bool:
        """
        Raise the yielded/broken flags from the current stress.

        Returns True if this call broke the element.
        """
        s = self._structure
        row = self.row
        stress = abs(self.stress())
        newly_broken = stress > s.ultimate_strength[row] and not s.broken[row]
        if stress > s.yield_strength[row]:
            s.yielded[row] = True
        if stress > s.ultimate_strength[row]:
            s.broken[row] = True
        return bool(newly_broken)

    def __eq__(self, other):
        return isinstance(other, Element) and other._structure is self._structure and other.id == self.id

    def __hash__(self):
        return hash((id(self._structure), self.id))

    def __repr__(self):
        return f"Element(id={self.id}, material={self.material.name})"


def _as_vector(value, what: str) -> np.ndarray:
    vec = np.asarray(value, dtype=float)
    if vec.shape != (2,):
        raise ValueError(f"{what} must be a 2D vector, got shape {vec.shape}")
    if not np.all(np.isfinite(vec)):
        raise ValueError(f"{what} must be finite, got {vec.tolist()}")
    return vec


class Structure:
    """
    Owner of the node/element/load arena.

    Parameters:
    -----------
    coincident_tolerance : float
        Nodes closer than this (m) cannot be joined by an element.

    Example:
    --------
    >>> s = Structure()
    >>> a = s.add_node((0.0, 0.0), fixed=True)
    >>> b = s.add_node((2.0, 0.0))
    >>> e = s.add_element(a, b, Material.STEEL)
    >>> s.node(b).mass    # half of 2 m of steel
    39.25
    """

    def __init__(self, coincident_tolerance: float = 1e-9):
        self.coincident_tolerance = coincident_tolerance
        self._next_node_id = 0
        self._next_element_id = 0
        self._next_load_id = 0
        self.topology_version = 0
        self._init_storage()

    def _init_storage(self) -> None:
        self.node_ids: List[int] = []
        self._node_rows: Dict[int, int] = {}
        self.positions = np.zeros((0, 2), dtype=float)
        self.original_positions = np.zeros((0, 2), dtype=float)
        self.velocities = np.zeros((0, 2), dtype=float)
        self.forces = np.zeros((0, 2), dtype=float)
        self.structural_mass = np.zeros(0, dtype=float)
        self.applied_mass = np.zeros(0, dtype=float)
        self.fixed = np.zeros(0, dtype=bool)

        self.element_ids: List[int] = []
        self._element_rows: Dict[int, int] = {}
        self._materials: List[Material] = []
        self.element_nodes = np.zeros((0, 2), dtype=np.intp)
        self.rest_length = np.zeros(0, dtype=float)
        self.stiffness = np.zeros(0, dtype=float)
        self.element_mass = np.zeros(0, dtype=float)
        self.youngs_modulus = np.zeros(0, dtype=float)
        self.area = np.zeros(0, dtype=float)
        self.yield_strength = np.zeros(0, dtype=float)
        self.ultimate_strength = np.zeros(0, dtype=float)
        self.broken = np.zeros(0, dtype=bool)
        self.yielded = np.zeros(0, dtype=bool)

        self._loads: Dict[int, LoadWeight] = {}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _node_row_of(self, node_id: int) -> int:
        try:
            return self._node_rows[node_id]
        except KeyError:
            raise InvalidReference(f"Node {node_id} does not exist") from None

    def _element_row_of(self, element_id: int) -> int:
        try:
            return self._element_rows[element_id]
        except KeyError:
            raise InvalidReference(f"Element {element_id} does not exist") from None

    def node(self, node_id: int) -> Node:
        self._node_row_of(node_id)
        return Node(self, node_id)

    def element(self, element_id: int) -> Element:
        self._element_row_of(element_id)
        return Element(self, element_id)

    def load(self, load_id: int) -> LoadWeight:
        try:
            return self._loads[load_id]
        except KeyError:
            raise InvalidReference(f"Load {load_id} does not exist") from None

    def nodes(self) -> Iterator[Node]:
        return (Node(self, nid) for nid in list(self.node_ids))

    def elements(self) -> Iterator[Element]:
        return (Element(self, eid) for eid in list(self.element_ids))

    def loads(self) -> List[LoadWeight]:
        return list(self._loads.values())

    @property
    def materials(self) -> List[Material]:
        """Material of every element in `element_ids` order."""
        return list(self._materials)

    @property
    def load_ids(self) -> List[int]:
        return list(self._loads)

    @property
    def n_nodes(self) -> int:
        return len(self.node_ids)

    @property
    def n_elements(self) -> int:
        return len(self.element_ids)

    @property
    def n_loads(self) -> int:
        return len(self._loads)

    def has_node(self, node_id: int) -> bool:
        return node_id in self._node_rows

    def has_element(self, element_id: int) -> bool:
        return element_id in self._element_rows

    def incident_elements(self, node_id: int) -> List[int]:
        """Ids of elements with `node_id` as one of their endpoints."""
        row = self._node_row_of(node_id)
        rows = np.flatnonzero(np.any(self.element_nodes == row, axis=1))
        return [self.element_ids[r] for r in rows]

    def loads_on(self, node_id: int) -> List[LoadWeight]:
        self._node_row_of(node_id)
        return [load for load in self._loads.values() if load.node_id == node_id]

    def load_position(self, load_id: int) -> np.ndarray:
        return self.node(self.load(load_id).node_id).position

    def find_node_near(self, position, radius: float) -> Optional[int]:
        """Id of the node nearest to `position` within `radius`, or None."""
        if self.n_nodes == 0:
            return None
        point = _as_vector(position, "position")
        distance = np.hypot(*(self.positions - point).T)
        row = int(np.argmin(distance))
        if distance[row] > radius:
            return None
        return self.node_ids[row]

    # ------------------------------------------------------------------
    # Topology edits
    # ------------------------------------------------------------------

    def add_node(self, position, fixed: bool = False) -> int:
        """Append a node at `position`. Always succeeds for a finite 2D position."""
        pos = _as_vector(position, "position")
        node_id = self._next_node_id
        self._next_node_id += 1

        self.node_ids.append(node_id)
        self._node_rows[node_id] = len(self.node_ids) - 1
        self.positions = np.vstack([self.positions, pos])
        self.original_positions = np.vstack([self.original_positions, pos])
        self.velocities = np.vstack([self.velocities, np.zeros(2)])
        self.forces = np.vstack([self.forces, np.zeros(2)])
        self.structural_mass = np.append(self.structural_mass, 0.0)
        self.applied_mass = np.append(self.applied_mass, 0.0)
        self.fixed = np.append(self.fixed, bool(fixed))

        self.topology_version += 1
        return node_id

    def add_element(self, node_a: int, node_b: int, material) -> int:
        """
        Connect two nodes with an axial member.

        Rest length, stiffness and mass are frozen from the current node
        positions. Half of the element mass is credited to each endpoint.

        Raises:
        -------
        InvalidReference
            If either node does not exist
        DegenerateElement
            If node_a == node_b or the two nodes are coincident
        """
        row_a = self._node_row_of(node_a)
        row_b = self._node_row_of(node_b)
        material = Material.parse(material)
        if node_a == node_b:
            logger.debug("Rejected element from node %d to itself", node_a)
            raise DegenerateElement(f"Cannot connect node {node_a} to itself")

        delta = self.positions[row_b] - self.positions[row_a]
        rest_length = float(np.hypot(delta[0], delta[1]))
        if rest_length <= self.coincident_tolerance:
            logger.debug("Rejected element between coincident nodes %d and %d", node_a, node_b)
            raise DegenerateElement(
                f"Nodes {node_a} and {node_b} are coincident at {self.positions[row_a].tolist()}"
            )

        props = material.properties
        element_id = self._next_element_id
        self._next_element_id += 1

        self.element_ids.append(element_id)
        self._element_rows[element_id] = len(self.element_ids) - 1
        self._materials.append(material)
        self.element_nodes = np.vstack([self.element_nodes, np.array([row_a, row_b], dtype=np.intp)])
        self.rest_length = np.append(self.rest_length, rest_length)
        self.stiffness = np.append(self.stiffness, props.stiffness(rest_length))
        self.element_mass = np.append(self.element_mass, props.mass(rest_length))
        self.youngs_modulus = np.append(self.youngs_modulus, props.youngs_modulus)
        self.area = np.append(self.area, props.cross_section_area)
        self.yield_strength = np.append(self.yield_strength, props.yield_strength)
        self.ultimate_strength = np.append(self.ultimate_strength, props.ultimate_strength)
        self.broken = np.append(self.broken, False)
        self.yielded = np.append(self.yielded, False)

        self._update_masses()
        self.topology_version += 1
        return element_id

    def remove_element(self, element_id: int) -> None:
        """Remove one element. Its half-masses leave both endpoints."""
        row = self._element_row_of(element_id)
        self._delete_element_rows([row])
        self._update_masses()
        self.topology_version += 1

    def remove_node(self, node_id: int) -> Tuple[List[int], List[int]]:
        """
        Remove a node together with every incident element and every load on it.

        Returns:
        --------
        (removed_element_ids, removed_load_ids)
        """
        row = self._node_row_of(node_id)
        element_rows = np.flatnonzero(np.any(self.element_nodes == row, axis=1))
        removed_elements = [self.element_ids[r] for r in element_rows]
        removed_loads = [lid for lid, load in self._loads.items() if load.node_id == node_id]

        for lid in removed_loads:
            del self._loads[lid]
        self._delete_element_rows(element_rows)

        keep = np.ones(self.n_nodes, dtype=bool)
        keep[row] = False
        for name in _NODE_VECTOR_ARRAYS + _NODE_SCALAR_ARRAYS:
            setattr(self, name, getattr(self, name)[keep])
        del self.node_ids[row]
        self._node_rows = {nid: i for i, nid in enumerate(self.node_ids)}
        # endpoints above the removed row shift down by one
        self.element_nodes = self.element_nodes - (self.element_nodes > row)

        self._update_masses()
        self.topology_version += 1
        if removed_elements or removed_loads:
            logger.debug(
                "Removed node %d with elements %s and loads %s",
                node_id, removed_elements, removed_loads,
            )
        return removed_elements, removed_loads

    def _delete_element_rows(self, rows: Sequence[int]) -> None:
        if len(rows) == 0:
            return
        keep = np.ones(self.n_elements, dtype=bool)
        keep[np.asarray(rows, dtype=np.intp)] = False
        for name in _ELEMENT_ARRAYS:
            setattr(self, name, getattr(self, name)[keep])
        self.element_ids = [eid for eid, k in zip(self.element_ids, keep) if k]
        self._materials = [m for m, k in zip(self._materials, keep) if k]
        self._element_rows = {eid: i for i, eid in enumerate(self.element_ids)}

    def toggle_fixed(self, node_id: int) -> bool:
        """Flip a node between fixed and free. Returns the new flag."""
        row = self._node_row_of(node_id)
        self.fixed[row] = not self.fixed[row]
        if self.fixed[row]:
            self.velocities[row] = 0.0
            self.forces[row] = 0.0
        self.topology_version += 1
        return bool(self.fixed[row])

    def add_load(self, node_id: int, mass: float) -> int:
        """Hang a point mass (kg) from a node."""
        self._node_row_of(node_id)
        mass = float(mass)
        if not np.isfinite(mass) or mass <= 0.0:
            raise ValueError(f"Load mass must be positive, got {mass}")
        load_id = self._next_load_id
        self._next_load_id += 1
        self._loads[load_id] = LoadWeight(id=load_id, node_id=node_id, mass=mass)
        self._update_masses()
        return load_id

    def remove_load(self, load_id: int) -> None:
        self.load(load_id)
        del self._loads[load_id]
        self._update_masses()

    def _update_masses(self) -> None:
        """Rederive node masses from the live element and load sets."""
        structural = np.zeros(self.n_nodes, dtype=float)
        if self.n_elements:
            np.add.at(
                structural,
                self.element_nodes.ravel(),
                np.repeat(self.element_mass / 2.0, 2),
            )
        applied = np.zeros(self.n_nodes, dtype=float)
        for load in self._loads.values():
            applied[self._node_rows[load.node_id]] += load.mass
        self.structural_mass = structural
        self.applied_mass = applied

    # ------------------------------------------------------------------
    # State resets
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return every node to rest at its original position and clear failure flags."""
        self.positions[:] = self.original_positions
        self.velocities[:] = 0.0
        self.forces[:] = 0.0
        self.broken[:] = False
        self.yielded[:] = False

    def clear(self) -> None:
        """Remove all nodes, elements and loads. Ids keep counting up."""
        self._init_storage()
        self.topology_version += 1

    # ------------------------------------------------------------------
    # Aggregate queries
    # ------------------------------------------------------------------

    def total_mass(self) -> float:
        """Σ element masses + Σ load masses (kg)."""
        return float(self.element_mass.sum() + sum(load.mass for load in self._loads.values()))

    def failure_counts(self) -> Tuple[int, int]:
        """(broken count, yielded count)."""
        return int(self.broken.sum()), int(self.yielded.sum())

    def lengths(self) -> np.ndarray:
        return element_lengths(self.positions, self.element_nodes)

    def strains(self) -> np.ndarray:
        return element_strains(self.lengths(), self.rest_length)

    def stresses(self) -> np.ndarray:
        """Stress of every element in `element_ids` order (Pa)."""
        return element_stresses(self.lengths(), self.rest_length, self.youngs_modulus)

    def axial_forces(self) -> np.ndarray:
        return element_axial_forces(self.stresses(), self.area)

    def stress_ratios(self) -> np.ndarray:
        return element_stress_ratios(self.stresses(), self.ultimate_strength)

    def check_failures(self) -> Tuple[List[int], List[int]]:
        """
        Update failure flags for all elements.

        Returns:
        --------
        (newly_yielded_ids, newly_broken_ids)
        """
        newly_yielded, newly_broken = update_failure_flags(
            self.stresses(), self.yield_strength, self.ultimate_strength,
            self.yielded, self.broken,
        )
        return (
            [self.element_ids[r] for r in np.flatnonzero(newly_yielded)],
            [self.element_ids[r] for r in np.flatnonzero(newly_broken)],
        )

    def anchor_span(self) -> Optional[Tuple[float, float]]:
        """(min x, max x) over fixed nodes, or None without supports."""
        if not np.any(self.fixed):
            return None
        xs = self.positions[self.fixed, 0]
        return float(xs.min()), float(xs.max())
