from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Tuple

from pwguess.core.error_dialect import PwGuessError, require
from pwguess.core.models import AdjacencyGraph

# Each token is the unshifted then shifted character of one key. Every row is indented one
# column further than the row above, which is what makes the slanted neighbourhood line up.
QWERTY_LAYOUT = r"""
`~ 1! 2@ 3# 4$ 5% 6^ 7& 8* 9( 0) -_ =+
    qQ wW eE rR tT yY uU iI oO pP [{ ]} \|
     aA sS dD fF gG hH jJ kK lL ;: '"
      zZ xX cC vV bB nN mM ,< .> /?
"""

DVORAK_LAYOUT = r"""
`~ 1! 2@ 3# 4$ 5% 6^ 7& 8* 9( 0) [{ ]}
    '" ,< .> pP yY fF gG cC rR lL /? =+ \|
     aA oO eE uU iI dD hH tT nN sS -_
      ;: qQ jJ kK xX bB mM wW vV zZ
"""

KEYPAD_LAYOUT = r"""
  / * -
7 8 9 +
4 5 6
1 2 3
  0 .
"""

MAC_KEYPAD_LAYOUT = r"""
  = / *
7 8 9 -
4 5 6 +
1 2 3
  0 .
"""


def _slanted_neighbours(x: int, y: int) -> List[Tuple[int, int]]:
    # left, top, top-right, right, bottom, bottom-left
    return [(x - 1, y), (x, y - 1), (x + 1, y - 1), (x + 1, y), (x, y + 1), (x - 1, y + 1)]


def _aligned_neighbours(x: int, y: int) -> List[Tuple[int, int]]:
    return [
        (x - 1, y),
        (x - 1, y - 1),
        (x, y - 1),
        (x + 1, y - 1),
        (x + 1, y),
        (x + 1, y + 1),
        (x, y + 1),
        (x - 1, y + 1),
    ]


def build_adjacency_graph(layout: str, slanted: bool) -> Dict[str, List[Optional[str]]]:
    """Turn a keyboard layout drawing into a char -> direction-indexed neighbour list.

    Slot order is the direction, so two consecutive steps through the same slot index are a
    straight line and a change of index is a turn. Missing neighbours are kept as ``None`` to
    give every key the same number of slots.
    """
    tokens = layout.split()
    require(bool(tokens), "invalid_layout", "keyboard layout is empty")
    token_size = len(tokens[0])
    require(
        all(len(token) == token_size for token in tokens),
        "invalid_layout",
        "keyboard layout tokens must all have the same width",
    )
    x_unit = token_size + 1
    neighbours = _slanted_neighbours if slanted else _aligned_neighbours

    positions: Dict[Tuple[int, int], str] = {}
    for y, line in enumerate(layout.split("\n")):
        slant = y - 1 if slanted else 0
        col = 0
        for token in line.split():
            idx = line.index(token, col)
            col = idx + len(token)
            x, remainder = divmod(idx - slant, x_unit)
            if remainder != 0:
                raise PwGuessError("invalid_layout", f"unexpected column offset for key {token!r}")
            positions[(x, y)] = token

    graph: Dict[str, List[Optional[str]]] = {}
    for (x, y), chars in positions.items():
        slots = [positions.get(coord) for coord in neighbours(x, y)]
        for ch in chars:
            graph[ch] = list(slots)
    return graph


def graph_stats(graph: AdjacencyGraph) -> Tuple[int, float]:
    """Starting positions and average degree ('g' has 6 neighbours on qwerty, '\\' has 1)."""
    require(bool(graph), "invalid_graph", "adjacency graph is empty")
    total = 0
    for key, slots in graph.items():
        require(isinstance(key, str) and len(key) == 1, "invalid_graph", f"graph key {key!r} is not one character")
        for slot in slots:
            require(slot is None or isinstance(slot, str), "invalid_graph", f"bad adjacency slot for {key!r}")
            if slot:
                total += 1
    return len(graph), float(total) / len(graph)


def shifted_characters(graph: AdjacencyGraph) -> frozenset:
    out = set()
    for slots in graph.values():
        for slot in slots:
            if slot and len(slot) > 1:
                out.add(slot[1])
    return frozenset(out)


@lru_cache(maxsize=1)
def _default_graphs() -> Tuple[Tuple[str, Dict[str, List[Optional[str]]]], ...]:
    return (
        ("qwerty", build_adjacency_graph(QWERTY_LAYOUT, slanted=True)),
        ("dvorak", build_adjacency_graph(DVORAK_LAYOUT, slanted=True)),
        ("keypad", build_adjacency_graph(KEYPAD_LAYOUT, slanted=False)),
        ("mac_keypad", build_adjacency_graph(MAC_KEYPAD_LAYOUT, slanted=False)),
    )


def default_graphs() -> Mapping[str, AdjacencyGraph]:
    return {name: graph for name, graph in _default_graphs()}
