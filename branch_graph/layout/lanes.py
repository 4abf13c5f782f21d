import logging
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence

logger = logging.getLogger(__name__)

NULL_VERTEX_ID = -1

DEFAULT_COLOURS = [
    "#0085d9", "#d9008f", "#00d90a", "#d98500", "#a300d9", "#ff0000",
    "#00d9cc", "#e138e8", "#85d900", "#dc5b23", "#6f24d6", "#ffcc00",
]


class Point(NamedTuple):
    x: int  # lane
    y: int  # row


@dataclass(frozen=True)
class Line:
    p1: Point
    p2: Point
    committed: bool
    # True: the line stays attached to p1 when rows are stretched
    locked_first: bool


@dataclass
class GraphConfig:
    grid_x: float = 16
    grid_y: float = 24
    offset_x: float = 8
    offset_y: float = 12
    expand_y: float = 0
    colours: List[str] = field(default_factory=lambda: list(DEFAULT_COLOURS))


@dataclass
class PlacedLine:
    x1: float
    y1: float
    x2: float
    y2: float
    committed: bool
    locked_first: bool


@dataclass
class PlacedBranch:
    colour: str
    lines: List[PlacedLine]


@dataclass(frozen=True)
class PlacedVertex:
    hash: str
    lane: int
    row: int
    colour: int
    x: float
    y: float
    is_merge: bool
    is_current: bool
    committed: bool


class LaneBranch:
    def __init__(self, colour: int, start: int):
        self.colour = colour
        self.start = start
        self.end = 0
        self.lines: List[Line] = []
        self.num_uncommitted = 0

    def add_line(self, p1: Point, p2: Point, committed: bool, locked_first: bool) -> None:
        self.lines.append(Line(p1, p2, committed, locked_first))
        if committed:
            if p2.x == 0 and p2.y < self.num_uncommitted:
                self.num_uncommitted = p2.y
        else:
            self.num_uncommitted += 1

    def set_end(self, end: int) -> None:
        if end > self.end:
            self.end = end


class _Connection(NamedTuple):
    connects_to: Optional["Vertex"]
    on_branch: LaneBranch


class Vertex:
    def __init__(self, id: int, committed: bool = True):
        self.id = id
        self.committed = committed
        self.is_current = False
        self.x = 0
        self.next_x = 0
        self.parents: List["Vertex"] = []
        self.children: List["Vertex"] = []
        self.next_parent_index = 0
        self.branch: Optional[LaneBranch] = None
        self.connections: List[_Connection] = []

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    def next_parent(self) -> Optional["Vertex"]:
        if self.next_parent_index < len(self.parents):
            return self.parents[self.next_parent_index]
        return None

    def register_parent_processed(self) -> None:
        self.next_parent_index += 1

    def add_to_branch(self, branch: LaneBranch, x: int) -> None:
        if self.branch is None:
            self.branch = branch
            self.x = x

    def point(self) -> Point:
        return Point(self.x, self.id)

    def next_point(self) -> Point:
        return Point(self.next_x, self.id)

    def point_connecting_to(self, vertex: Optional["Vertex"], branch: LaneBranch) -> Optional[Point]:
        for x, conn in enumerate(self.connections):
            if conn.connects_to is vertex and conn.on_branch is branch:
                return Point(x, self.id)
        return None

    def register_unavailable_point(self, x: int, connects_to: Optional["Vertex"], branch: LaneBranch) -> None:
        # Lanes are claimed left to right, one at a time
        if x == self.next_x:
            self.next_x = x + 1
            self.connections.append(_Connection(connects_to, branch))

    @property
    def colour(self) -> int:
        return self.branch.colour if self.branch is not None else 0


class LaneLayout:
    """Assigns every commit a lane and colour.

    `commits` is any newest-first sequence of objects with `hash` and
    `parents`; an optional `committed` attribute marks working-tree
    pseudo-commits. Paths are traced from each commit down through its
    parents, and every traced path is a LaneBranch with its own colour and
    line segments in (lane, row) space. A parent outside the sequence ends
    the path as if the commit were a root. A colour goes to a new branch
    only once the last branch using it has ended above the new one's first
    row.
    """

    def __init__(self, commits: Sequence, head: Optional[str] = None, only_follow_first_parent: bool = False):
        self.commits = list(commits)
        self.head = head
        self.only_follow_first_parent = only_follow_first_parent
        self.vertices: List[Vertex] = []
        self.branches: List[LaneBranch] = []
        self.available_colours: List[int] = []
        self.lookup: Dict[str, int] = {}
        self._null_vertex = Vertex(NULL_VERTEX_ID)
        self._build_vertices()
        self._determine_paths()

    def _build_vertices(self) -> None:
        for i, commit in enumerate(self.commits):
            self.lookup.setdefault(commit.hash, i)
            self.vertices.append(Vertex(i, committed=getattr(commit, "committed", True)))

        for i, commit in enumerate(self.commits):
            for j, parent_hash in enumerate(getattr(commit, "parents", None) or []):
                parent_index = self.lookup.get(parent_hash)
                if parent_index is not None and parent_index != i:
                    self.vertices[i].parents.append(self.vertices[parent_index])
                    self.vertices[parent_index].children.append(self.vertices[i])
                elif not self.only_follow_first_parent or j == 0:
                    self.vertices[i].parents.append(self._null_vertex)

        if self.head is not None and self.head in self.lookup:
            self.vertices[self.lookup[self.head]].is_current = True

    def _determine_paths(self) -> None:
        i = 0
        iterations = 0
        max_iterations = len(self.vertices) * 10
        while i < len(self.vertices) and iterations < max_iterations:
            iterations += 1
            vertex = self.vertices[i]
            if vertex.next_parent() is None and vertex.branch is not None:
                i += 1
                continue
            before = (vertex.next_parent_index, vertex.branch)
            self._determine_path(i)
            if (vertex.next_parent_index, vertex.branch) == before:
                # No parent could be reached from here
                i += 1

        if iterations >= max_iterations:
            logger.warning(f"Lane layout stopped after {iterations} iterations")

        for vertex in self.vertices:
            if vertex.branch is None:
                self._isolated_branch(vertex)

    def _determine_path(self, start_at: int) -> None:
        vertex = self.vertices[start_at]
        parent = self._next_known_parent(vertex)
        if parent is None and vertex.branch is not None:
            return
        last_point = vertex.next_point() if vertex.branch is None else vertex.point()

        if (
            parent is not None
            and vertex.is_merge
            and vertex.branch is not None
            and parent.branch is not None
        ):
            self._land_merge(start_at, vertex, parent, last_point)
            return

        branch = LaneBranch(self._available_colour(start_at), start_at)
        vertex.add_to_branch(branch, last_point.x)
        vertex.register_unavailable_point(last_point.x, vertex, branch)

        # A root has nothing below it to trace
        i = start_at + 1 if parent is not None else start_at
        while parent is not None and i < len(self.vertices):
            current = self.vertices[i]
            if parent is current and parent.branch is not None:
                point = current.point()
            else:
                point = current.next_point()

            branch.add_line(last_point, point, vertex.committed, last_point.x < point.x)
            current.register_unavailable_point(point.x, parent, branch)
            last_point = point

            if parent is current:
                vertex.register_parent_processed()
                parent_was_on_branch = parent.branch is not None
                parent.add_to_branch(branch, point.x)
                vertex = parent
                if parent_was_on_branch:
                    break
                parent = self._next_known_parent(vertex)
                if parent is None:
                    break
            i += 1

        self._finish_branch(branch, i)

    def _next_known_parent(self, vertex: Vertex) -> Optional[Vertex]:
        """Next parent to trace; an unknown parent ends the chain like a root."""
        parent = vertex.next_parent()
        if parent is not None and parent.id == NULL_VERTEX_ID:
            vertex.register_parent_processed()
            return None
        return parent

    def _land_merge(self, start_at: int, vertex: Vertex, parent: Vertex, last_point: Point) -> None:
        """Draws a merge's edge into the branch its parent already sits on."""
        parent_branch = parent.branch
        for i in range(start_at + 1, len(self.vertices)):
            current = self.vertices[i]
            point = current.point_connecting_to(parent, parent_branch)
            found = point is not None
            if point is None:
                point = current.next_point()

            locked_first = last_point.x < point.x if not found and current is not parent else True
            parent_branch.add_line(last_point, point, vertex.committed, locked_first)
            current.register_unavailable_point(point.x, parent, parent_branch)
            last_point = point

            if found:
                vertex.register_parent_processed()
                break

    def _isolated_branch(self, vertex: Vertex) -> None:
        branch = LaneBranch(self._available_colour(vertex.id), vertex.id)
        vertex.add_to_branch(branch, vertex.next_x)
        vertex.register_unavailable_point(vertex.x, vertex, branch)
        self._finish_branch(branch, vertex.id)

    def _finish_branch(self, branch: LaneBranch, end: int) -> None:
        branch.set_end(end)
        self.branches.append(branch)
        self.available_colours[branch.colour] = branch.end

    def _available_colour(self, start_at: int) -> int:
        for colour, ended_at in enumerate(self.available_colours):
            if start_at > ended_at:
                return colour
        self.available_colours.append(0)
        return len(self.available_colours) - 1

    def lane_of(self, commit_hash: str) -> Optional[int]:
        index = self.lookup.get(commit_hash)
        return self.vertices[index].x if index is not None else None

    def vertex_points(self, config: Optional[GraphConfig] = None, expand_at: int = -1) -> List[PlacedVertex]:
        config = config or GraphConfig()
        placed = []
        for vertex, commit in zip(self.vertices, self.commits):
            y = vertex.id * config.grid_y + config.offset_y
            if -1 < expand_at < vertex.id:
                y += config.expand_y
            placed.append(PlacedVertex(
                hash=commit.hash,
                lane=vertex.x,
                row=vertex.id,
                colour=vertex.colour,
                x=vertex.x * config.grid_x + config.offset_x,
                y=y,
                is_merge=vertex.is_merge,
                is_current=vertex.is_current,
                committed=vertex.committed,
            ))
        return placed

    def place(self, config: Optional[GraphConfig] = None, expand_at: int = -1) -> List[PlacedBranch]:
        """Pixel geometry for every branch, with `expand_at` stretching the row below it."""
        config = config or GraphConfig()
        return [
            PlacedBranch(
                colour=config.colours[branch.colour % len(config.colours)],
                lines=place_lines(branch, config, expand_at),
            )
            for branch in self.branches
        ]

    def content_width(self, config: Optional[GraphConfig] = None) -> float:
        config = config or GraphConfig()
        widest = max((v.next_x for v in self.vertices), default=0)
        return 2 * config.offset_x + (widest - 1) * config.grid_x if widest > 0 else 2 * config.offset_x

    def height(self, config: Optional[GraphConfig] = None, expand_at: int = -1) -> float:
        config = config or GraphConfig()
        if not self.vertices:
            return 0
        return (
            len(self.vertices) * config.grid_y
            + config.offset_y
            - config.grid_y / 2
            + (config.expand_y if expand_at > -1 else 0)
        )


def place_lines(branch: LaneBranch, config: GraphConfig, expand_at: int = -1) -> List[PlacedLine]:
    lines: List[PlacedLine] = []
    for i, line in enumerate(branch.lines):
        committed = i >= branch.num_uncommitted
        x1 = line.p1.x * config.grid_x + config.offset_x
        y1 = line.p1.y * config.grid_y + config.offset_y
        x2 = line.p2.x * config.grid_x + config.offset_x
        y2 = line.p2.y * config.grid_y + config.offset_y

        if expand_at > -1:
            if line.p1.y > expand_at:
                y1 += config.expand_y
                y2 += config.expand_y
            elif line.p2.y > expand_at:
                if x1 == x2:
                    y2 += config.expand_y
                elif line.locked_first:
                    lines.append(PlacedLine(x1, y1, x2, y2, committed, True))
                    lines.append(PlacedLine(x2, y1 + config.grid_y, x2, y2 + config.expand_y, committed, True))
                    continue
                else:
                    lines.append(PlacedLine(x1, y1, x1, y2 - config.grid_y + config.expand_y, committed, False))
                    y1 += config.expand_y
                    y2 += config.expand_y

        lines.append(PlacedLine(x1, y1, x2, y2, committed, line.locked_first))

    # Collapse runs of vertical segments into one
    i = 0
    while i < len(lines) - 1:
        line, following = lines[i], lines[i + 1]
        if (
            line.x1 == line.x2 == following.x1 == following.x2
            and line.y2 == following.y1
            and line.committed == following.committed
        ):
            line.y2 = following.y2
            del lines[i + 1]
        else:
            i += 1
    return lines
