"""Tests for the draw interaction state machine"""

import pytest

from backend.map.draw_state import DrawEventKind, DrawMode, DrawStateMachine
from backend.utils.exceptions import DrawStateError

TRIANGLE = [(-8.5, 39.4), (-8.4, 39.4), (-8.4, 39.5)]
CLOSED_TRIANGLE = tuple(TRIANGLE) + (TRIANGLE[0],)
SQUARE = [(-9.2, 38.7), (-9.1, 38.7), (-9.1, 38.8), (-9.2, 38.8), (-9.2, 38.7)]

@pytest.fixture
def draw():
    return DrawStateMachine()

@pytest.fixture
def events(draw):
    received = []
    draw.subscribe(received.append)
    return received

@pytest.fixture
def complete(draw):
    draw.start()
    draw.finish([TRIANGLE])
    return draw

def test_starts_idle(draw):
    assert draw.mode is DrawMode.IDLE
    assert draw.current_polygon is None
    assert not draw.has_polygon

def test_draw_then_clear_emits_create_and_delete(draw, events):
    draw.start()
    draw.finish([TRIANGLE])
    draw.clear()

    assert [e.kind for e in events] == [DrawEventKind.CREATE, DrawEventKind.DELETE]
    assert draw.mode is DrawMode.IDLE
    assert draw.current_polygon is None

def test_event_names():
    assert [k.value for k in DrawEventKind] == ["draw.create", "draw.update", "draw.delete"]

def test_finish_closes_ring(draw, events):
    draw.start()
    polygon = draw.finish([TRIANGLE])

    assert polygon == (CLOSED_TRIANGLE,)
    assert draw.current_polygon == polygon
    assert draw.mode is DrawMode.COMPLETE
    assert events[0].rings == polygon

def test_finish_keeps_already_closed_ring(draw):
    draw.start()
    assert draw.finish([SQUARE]) == (tuple(SQUARE),)

def test_finish_from_placed_vertices(draw):
    draw.start()
    for lng, lat in TRIANGLE:
        draw.add_vertex(lng, lat)
    assert draw.vertices == tuple(TRIANGLE)

    assert draw.finish() == (CLOSED_TRIANGLE,)
    assert draw.vertices == ()

def test_finish_with_too_few_vertices_stays_drawing(draw, events):
    draw.start()
    draw.add_vertex(-8.5, 39.4)
    draw.add_vertex(-8.4, 39.4)
    draw.add_vertex(-8.5, 39.4)

    with pytest.raises(DrawStateError):
        draw.finish()

    assert draw.mode is DrawMode.DRAWING
    assert events == []

def test_start_and_cancel_emit_nothing(draw, events):
    draw.start()
    draw.add_vertex(-8.5, 39.4)
    draw.cancel()

    assert draw.mode is DrawMode.IDLE
    assert draw.vertices == ()
    assert events == []

def test_redraw_replaces_polygon_on_finish(complete, events):
    complete.start()
    assert complete.current_polygon == (CLOSED_TRIANGLE,)

    complete.finish([SQUARE])
    assert complete.current_polygon == (tuple(SQUARE),)
    assert [e.kind for e in events] == [DrawEventKind.CREATE]

def test_cancel_redraw_keeps_previous_polygon(complete, events):
    complete.start()
    complete.add_vertex(-9.0, 38.0)
    complete.cancel()

    assert complete.mode is DrawMode.COMPLETE
    assert complete.current_polygon == (CLOSED_TRIANGLE,)
    assert complete.vertices == ()
    assert events == []

    complete.clear()
    assert [e.kind for e in events] == [DrawEventKind.DELETE]

def test_update_emits_update(complete, events):
    complete.update([SQUARE])

    assert complete.mode is DrawMode.COMPLETE
    assert complete.current_polygon == (tuple(SQUARE),)
    assert [e.kind for e in events] == [DrawEventKind.UPDATE]

def test_edit_vertex(complete, events):
    polygon = complete.edit_vertex(0, 1, -8.3, 39.3)

    assert polygon[0][1] == (-8.3, 39.3)
    assert polygon[0][0] == polygon[0][-1]
    assert events[-1].kind is DrawEventKind.UPDATE

def test_edit_first_vertex_moves_closing_point(complete):
    polygon = complete.edit_vertex(0, 0, -8.6, 39.3)
    assert polygon[0][0] == polygon[0][-1] == (-8.6, 39.3)

@pytest.mark.parametrize("ring_index, vertex_index", [(1, 0), (-1, 0), (0, 3), (0, -1)])
def test_edit_vertex_out_of_range(complete, events, ring_index, vertex_index):
    with pytest.raises(DrawStateError):
        complete.edit_vertex(ring_index, vertex_index, 0.0, 0.0)
    assert events == []

@pytest.mark.parametrize("command", [
    lambda d: d.finish([TRIANGLE]),
    lambda d: d.add_vertex(0.0, 0.0),
    lambda d: d.cancel(),
    lambda d: d.clear(),
    lambda d: d.update([TRIANGLE]),
])
def test_invalid_commands_while_idle(draw, command):
    with pytest.raises(DrawStateError):
        command(draw)
    assert draw.mode is DrawMode.IDLE

def test_start_while_drawing_is_rejected(draw):
    draw.start()
    with pytest.raises(DrawStateError):
        draw.start()

@pytest.mark.parametrize("command", [lambda d: d.clear(), lambda d: d.update([TRIANGLE])])
def test_complete_only_commands_while_drawing(draw, command):
    draw.start()
    with pytest.raises(DrawStateError):
        command(draw)

def test_unsubscribe(draw):
    received = []
    unsubscribe = draw.subscribe(received.append)
    unsubscribe()
    unsubscribe()

    draw.start()
    draw.finish([TRIANGLE])
    assert received == []
