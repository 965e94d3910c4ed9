"""In-memory category tree helpers.

Pure functions over already-fetched rows: assembling the nested forest and
walking parent links to get a node's depth and display path. Lookup maps are
built per call and thrown away.
"""

import enum
import uuid
from typing import Iterable, List, Mapping, NamedTuple, Optional, Protocol

import structlog

from app.schemas.category import CategoryTreeResponse

logger = structlog.get_logger(__name__)

PATH_SEPARATOR = " > "
DEFAULT_MAX_PATH_DEPTH = 20


class OrphanPolicy(str, enum.Enum):
    """What to do with a node whose parent is missing from the input set.

    PROMOTE: show it as a root (its parent was filtered out, e.g. inactive).
    EXCLUDE: drop it together with everything below it.
    """

    PROMOTE = "promote"
    EXCLUDE = "exclude"


class HierarchyEntry(Protocol):
    name: str
    parent_id: Optional[uuid.UUID]


class PathInfo(NamedTuple):
    depth: int
    full_path: str


def build_forest(
    nodes: Iterable[CategoryTreeResponse],
    orphan_policy: OrphanPolicy = OrphanPolicy.PROMOTE,
) -> List[CategoryTreeResponse]:
    """Nest an ordered flat list of categories into a forest.

    Children keep the relative order they had in ``nodes``, so callers pass
    rows sorted by (sort_order, name). Runs in O(n).

    Args:
        nodes: Flat, ordered category nodes
        orphan_policy: Handling of nodes whose parent_id is not in ``nodes``

    Returns:
        Root nodes, each with ``children`` filled in recursively
    """
    index: dict[uuid.UUID, CategoryTreeResponse] = {}
    for node in nodes:
        node.children = []
        index[node.id] = node

    roots: List[CategoryTreeResponse] = []
    dropped = 0

    for node in index.values():
        if node.parent_id is not None and node.parent_id in index:
            index[node.parent_id].children.append(node)
        elif node.parent_id is None or orphan_policy is OrphanPolicy.PROMOTE:
            roots.append(node)
        else:
            # Unreachable from any root; its subtree goes with it.
            dropped += 1

    logger.debug(
        "category_forest_built",
        roots=len(roots),
        total=len(index),
        orphans_dropped=dropped,
    )
    return roots


def compute_path(
    lookup: Mapping[uuid.UUID, HierarchyEntry],
    category_id: uuid.UUID,
    max_depth: int = DEFAULT_MAX_PATH_DEPTH,
) -> PathInfo:
    """Depth and "Root > ... > Node" path for one category.

    Walks parent links upward until a root, or a parent missing from
    ``lookup``. The walk stops after ``max_depth`` hops so corrupt cyclic
    data truncates the path instead of looping forever.

    Args:
        lookup: id -> entry with ``name`` and ``parent_id``, covering every category
        category_id: Category to describe (must be in ``lookup``)
        max_depth: Maximum number of ancestors to follow

    Returns:
        PathInfo with depth (0 for roots) and the joined path
    """
    entry = lookup[category_id]
    names = [entry.name]
    depth = 0
    current_id = entry.parent_id

    while current_id is not None:
        parent = lookup.get(current_id)
        if parent is None:
            break
        if depth >= max_depth:
            logger.warning(
                "category_path_depth_exceeded",
                category_id=str(category_id),
                max_depth=max_depth,
            )
            break
        names.insert(0, parent.name)
        depth += 1
        current_id = parent.parent_id

    return PathInfo(depth=depth, full_path=PATH_SEPARATOR.join(names))
