"""Selection state machine over the three dashboard regions.

The screen stacks a container-service strip, a pull-request strip and the
workflow grid. Strips are circular lists; the grid is a 2D layout without
wraparound. Crossing between regions goes through an explicit table so the
rules stay inspectable.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum

from .event_log import TRACE

logger = logging.getLogger(__name__)

MAX_GRID_COLUMNS = 3


class Region(str, Enum):
    CONTAINER_SERVICES = "container_services"
    PULL_REQUESTS = "pull_requests"
    WORKFLOWS = "workflows"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


# (region, direction) -> regions to try, in order, when leaving the region.
# The first non-empty candidate wins; no candidate means the move is a no-op.
CROSSINGS: dict[tuple[Region, Direction], tuple[Region, ...]] = {
    (Region.WORKFLOWS, Direction.UP): (Region.PULL_REQUESTS, Region.CONTAINER_SERVICES),
    (Region.PULL_REQUESTS, Direction.UP): (Region.CONTAINER_SERVICES,),
    (Region.PULL_REQUESTS, Direction.DOWN): (Region.WORKFLOWS,),
    (Region.CONTAINER_SERVICES, Direction.DOWN): (Region.WORKFLOWS,),
}


@dataclass(frozen=True)
class GridLayout:
    cols: int
    rows: int

    @classmethod
    def for_count(cls, count: int) -> "GridLayout":
        """Near-square layout capped at MAX_GRID_COLUMNS columns."""
        if count <= 0:
            return cls(cols=1, rows=0)
        if count == 1:
            return cls(cols=1, rows=1)
        cols = min(math.ceil(math.sqrt(count)), MAX_GRID_COLUMNS)
        return cls(cols=cols, rows=math.ceil(count / cols))

    def coords(self, index: int) -> tuple[int, int]:
        """(row, col) of a flat index."""
        return divmod(index, self.cols)

    def index(self, row: int, col: int) -> int:
        return row * self.cols + col


@dataclass(frozen=True)
class RegionCounts:
    container_services: int = 0
    pull_requests: int = 0
    workflows: int = 0

    def of(self, region: Region) -> int:
        return getattr(self, region.value)


@dataclass(frozen=True)
class Selection:
    region: Region = Region.WORKFLOWS
    container_services: int = 0
    pull_requests: int = 0
    workflows: int = 0

    def index_of(self, region: Region) -> int:
        return getattr(self, region.value)

    @property
    def index(self) -> int:
        return self.index_of(self.region)

    def with_index(self, region: Region, index: int) -> "Selection":
        return replace(self, **{region.value: index})

    def focus(self, region: Region, index: int) -> "Selection":
        return replace(self, region=region, **{region.value: index})


def _clamp_index(index: int, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))


def is_valid(selection: Selection, counts: RegionCounts) -> bool:
    """True if every index is in range and the active region is enterable."""
    for region in Region:
        count = counts.of(region)
        index = selection.index_of(region)
        if count == 0 and index != 0:
            return False
        if count > 0 and not 0 <= index < count:
            return False
    if selection.region is not Region.WORKFLOWS and counts.of(selection.region) == 0:
        return False
    return True


def clamp(selection: Selection, counts: RegionCounts) -> Selection:
    """Bring a selection back within counts after a relayout.

    An index past the end moves to the last item rather than resetting. An
    empty strip hands focus back to the workflow grid.
    """
    clamped = Selection(
        region=selection.region,
        container_services=_clamp_index(selection.container_services, counts.container_services),
        pull_requests=_clamp_index(selection.pull_requests, counts.pull_requests),
        workflows=_clamp_index(selection.workflows, counts.workflows),
    )
    if clamped.region is not Region.WORKFLOWS and counts.of(clamped.region) == 0:
        clamped = replace(clamped, region=Region.WORKFLOWS)
    return clamped


def _cross(
    selection: Selection,
    counts: RegionCounts,
    layout: GridLayout,
    direction: Direction,
    column: int,
) -> Selection:
    for target in CROSSINGS.get((selection.region, direction), ()):
        count = counts.of(target)
        if count == 0:
            continue
        if target is Region.WORKFLOWS:
            col = min(column, layout.cols - 1)
            return selection.focus(target, _clamp_index(col, count))
        return selection.focus(target, _clamp_index(column, count))
    return selection


def _move_in_strip(
    selection: Selection, counts: RegionCounts, layout: GridLayout, direction: Direction
) -> Selection:
    count = counts.of(selection.region)
    index = selection.index
    if direction is Direction.LEFT:
        return selection.with_index(selection.region, (index - 1) % count)
    if direction is Direction.RIGHT:
        return selection.with_index(selection.region, (index + 1) % count)
    return _cross(selection, counts, layout, direction, column=index)


def _move_in_grid(
    selection: Selection, counts: RegionCounts, layout: GridLayout, direction: Direction
) -> Selection:
    count = counts.workflows
    if count == 0:
        # An empty grid behaves as its own top row
        if direction is Direction.UP:
            return _cross(selection, counts, layout, direction, column=0)
        return selection

    row, col = layout.coords(selection.workflows)
    if direction is Direction.UP:
        if row == 0:
            return _cross(selection, counts, layout, direction, column=col)
        row -= 1
    elif direction is Direction.DOWN:
        row += 1
    elif direction is Direction.LEFT:
        col -= 1
    elif direction is Direction.RIGHT:
        col += 1

    if not (0 <= row < layout.rows and 0 <= col < layout.cols):
        return selection
    target = layout.index(row, col)
    if target >= count:
        return selection
    return selection.with_index(Region.WORKFLOWS, target)


def move(
    selection: Selection, counts: RegionCounts, layout: GridLayout, direction: Direction
) -> Selection:
    """Pure transition: the selection after one move in direction.

    Assumes selection is valid for counts (see clamp()).
    """
    if selection.region is Region.WORKFLOWS:
        return _move_in_grid(selection, counts, layout, direction)
    return _move_in_strip(selection, counts, layout, direction)


class NavigationEngine:
    """Holds the current selection and keeps it consistent with the layout."""

    def __init__(self, counts: RegionCounts | None = None):
        self.counts = counts if counts is not None else RegionCounts()
        self.layout = GridLayout.for_count(self.counts.workflows)
        self.selection = Selection()

    def update_counts(self, counts: RegionCounts) -> Selection:
        """Relayout for new region sizes, clamping the selection."""
        self.counts = counts
        self.layout = GridLayout.for_count(counts.workflows)
        clamped = clamp(self.selection, counts)
        if clamped != self.selection:
            logger.debug("Selection clamped to %s[%d]", clamped.region.value, clamped.index)
        self.selection = clamped
        return clamped

    def move(self, direction: Direction) -> bool:
        """Apply a move. Returns True if the selection changed."""
        if not is_valid(self.selection, self.counts):
            logger.error(
                "Selection %s[%d] out of range for %s; clamping",
                self.selection.region.value,
                self.selection.index,
                self.counts,
            )
            self.selection = clamp(self.selection, self.counts)
        new = move(self.selection, self.counts, self.layout, direction)
        if new == self.selection:
            return False
        logger.log(TRACE, "Selection -> %s[%d]", new.region.value, new.index)
        self.selection = new
        return True

    def select(self, region: Region, index: int) -> None:
        self.selection = clamp(self.selection.focus(region, index), self.counts)

    @property
    def region(self) -> Region:
        return self.selection.region

    @property
    def index(self) -> int:
        return self.selection.index

    def selected_index(self) -> tuple[Region, int]:
        """Active region and the index selected in it."""
        return self.selection.region, self.selection.index
