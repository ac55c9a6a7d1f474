"""Draw interaction state machine

Tracks the single search polygon a user can draw on the map. Only
transitions that change polygon data emit events; listeners use those
events to re-resolve the query and refetch.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import structlog

from backend.utils.exceptions import DrawStateError

logger = structlog.get_logger(__name__)

Point = Tuple[float, float]
Ring = Tuple[Point, ...]
Rings = Tuple[Ring, ...]

class DrawMode(Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    COMPLETE = "complete"

class DrawEventKind(Enum):
    CREATE = "draw.create"
    UPDATE = "draw.update"
    DELETE = "draw.delete"

@dataclass(frozen=True)
class DrawEvent:
    """Polygon data change; ``rings`` is the new polygon, or the discarded one on delete"""
    kind: DrawEventKind
    rings: Rings

DrawListener = Callable[[DrawEvent], None]

def _close_ring(points: Iterable[Sequence[float]]) -> Ring:
    ring = [(float(p[0]), float(p[1])) for p in points]
    if len(set(ring)) < 3:
        raise DrawStateError("A polygon ring needs at least three distinct vertices")
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return tuple(ring)

def _normalize_rings(rings: Iterable[Iterable[Sequence[float]]]) -> Rings:
    normalized = tuple(_close_ring(ring) for ring in rings)
    if not normalized:
        raise DrawStateError("A polygon needs at least one ring")
    return normalized

class DrawStateMachine:
    """Idle -> Drawing -> Complete -> Idle, one polygon at a time"""

    def __init__(self):
        self._mode = DrawMode.IDLE
        self._polygon: Optional[Rings] = None
        self._vertices: List[Point] = []
        self._listeners: List[DrawListener] = []

    @property
    def mode(self) -> DrawMode:
        return self._mode

    @property
    def current_polygon(self) -> Optional[Rings]:
        return self._polygon

    @property
    def vertices(self) -> Tuple[Point, ...]:
        """Vertices placed so far in the shape being drawn"""
        return tuple(self._vertices)

    @property
    def has_polygon(self) -> bool:
        return self._polygon is not None

    def subscribe(self, listener: DrawListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _require(self, *modes: DrawMode, command: str) -> None:
        if self._mode not in modes:
            raise DrawStateError(f"Cannot {command} while {self._mode.value}")

    def _emit(self, kind: DrawEventKind, rings: Rings) -> None:
        event = DrawEvent(kind=kind, rings=rings)
        logger.info("Draw event", kind=kind.value, rings=len(rings))
        for listener in list(self._listeners):
            listener(event)

    def start(self) -> None:
        """Enter drawing mode; a finished shape will replace any existing polygon"""
        self._require(DrawMode.IDLE, DrawMode.COMPLETE, command="start drawing")
        self._vertices = []
        self._mode = DrawMode.DRAWING

    def add_vertex(self, lng: float, lat: float) -> None:
        self._require(DrawMode.DRAWING, command="add a vertex")
        self._vertices.append((float(lng), float(lat)))

    def cancel(self) -> None:
        """Abandon the shape being drawn; a finished polygon stays in place"""
        self._require(DrawMode.DRAWING, command="cancel")
        self._vertices = []
        self._mode = DrawMode.COMPLETE if self._polygon is not None else DrawMode.IDLE

    def finish(self, rings: Optional[Iterable[Iterable[Sequence[float]]]] = None) -> Rings:
        """
        Close the shape being drawn

        Args:
            rings: Finished ring sequence from the drawing widget. When omitted,
                the vertices placed with :meth:`add_vertex` form the ring.

        Returns:
            The stored ring sequence (closed rings, [lng, lat] points)
        """
        self._require(DrawMode.DRAWING, command="finish")
        polygon = _normalize_rings(rings if rings is not None else [self._vertices])

        self._polygon = polygon
        self._vertices = []
        self._mode = DrawMode.COMPLETE
        self._emit(DrawEventKind.CREATE, polygon)
        return polygon

    def update(self, rings: Iterable[Iterable[Sequence[float]]]) -> Rings:
        """Replace the finished polygon with a revised one"""
        self._require(DrawMode.COMPLETE, command="update")
        self._polygon = _normalize_rings(rings)
        self._emit(DrawEventKind.UPDATE, self._polygon)
        return self._polygon

    def edit_vertex(self, ring_index: int, vertex_index: int, lng: float, lat: float) -> Rings:
        """Move one vertex of the finished polygon"""
        self._require(DrawMode.COMPLETE, command="edit")
        rings = [list(ring) for ring in self._polygon]
        if not 0 <= ring_index < len(rings):
            raise DrawStateError(f"No ring {ring_index}")

        ring = rings[ring_index]
        last = len(ring) - 1
        if not 0 <= vertex_index < last:
            raise DrawStateError(f"No vertex {vertex_index} in ring {ring_index}")

        point = (float(lng), float(lat))
        ring[vertex_index] = point
        # The closing point mirrors the first one
        if vertex_index == 0:
            ring[last] = point

        return self.update(rings)

    def clear(self) -> None:
        """Discard the finished polygon and go back to the default search"""
        self._require(DrawMode.COMPLETE, command="clear")
        discarded = self._polygon
        self._polygon = None
        self._mode = DrawMode.IDLE
        self._emit(DrawEventKind.DELETE, discarded)
