import asyncio

import pytest

from snippet_builder.config_loader import EditorSettings
from snippet_builder.debounced_sync import DebouncedSync
from snippet_builder.interaction import (
    ContainerRect,
    DragResizeController,
    InteractionMode,
    PointerEvent,
    PointerTarget,
)
from snippet_builder.models import Position, Size


def make_controller(store, widget_id, container, settings):
    sync = DebouncedSync(store.commit, delay=settings.debounce_delay)
    return DragResizeController(widget_id, store, sync, lambda: container, settings=settings), sync


def down(x, y, target=PointerTarget.BODY):
    return PointerEvent(x=x, y=y, target=target)


def move(x, y):
    return PointerEvent(x=x, y=y, pointer_type="touch")


@pytest.mark.asyncio
async def test_drag_worked_example_and_final_commit(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    assert ctrl.pointer_down(down(0, 0)) is True
    assert ctrl.mode == InteractionMode.DRAGGING

    pos = ctrl.pointer_move(move(53, 27))
    assert pos == Position(x=60, y=20)
    assert store.get_widget("a").position == Position(x=60, y=20)

    assert await ctrl.pointer_up() is True
    assert ctrl.mode == InteractionMode.IDLE
    assert ctrl.session is None
    assert len(client.calls) == 1
    assert client.last_widget("a").position == Position(x=60, y=20)

    # the pending debounce was consumed by the final commit
    await asyncio.sleep(settings.debounce_delay * 3)
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_drag_accounts_for_container_origin_and_anchor_offset(store, client, settings):
    container = ContainerRect(left=100, top=50, width=1000, height=800)
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(110, 60))
    assert ctrl.session.anchor_offset.x == 10
    assert ctrl.session.anchor_offset.y == 10

    assert ctrl.pointer_move(move(173, 87)) == Position(x=60, y=20)
    await ctrl.pointer_up()


@pytest.mark.asyncio
async def test_drag_in_container_smaller_than_widget(store, client, settings):
    container = ContainerRect(width=300, height=300)
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(0, 0))
    assert ctrl.pointer_move(move(53, 27)) == Position(x=0, y=0)
    await ctrl.pointer_up()


@pytest.mark.asyncio
async def test_resize_worked_example(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    assert ctrl.pointer_down(down(400, 300, PointerTarget.RESIZE_HANDLE)) is True
    assert ctrl.mode == InteractionMode.RESIZING

    size = ctrl.pointer_move(move(445, 295))
    assert size == Size(width=440, height=300)

    await ctrl.pointer_up()
    assert client.last_widget("a").size == Size(width=440, height=300)
    assert client.last_widget("a").position == Position(x=0, y=0)


@pytest.mark.asyncio
async def test_resize_bounded_by_container_minus_position(store, client, container, settings):
    # widget "b" sits at (500, 400)
    ctrl, _ = make_controller(store, "b", container, settings)

    ctrl.pointer_down(down(900, 700, PointerTarget.RESIZE_HANDLE))
    assert ctrl.pointer_move(move(5000, 5000)) == Size(width=500, height=400)
    assert ctrl.pointer_move(move(0, 0)) == Size(width=100, height=100)
    await ctrl.pointer_up()


@pytest.mark.asyncio
async def test_resize_respects_configured_maximum(store, client):
    settings = EditorSettings(debounce_delay=0.02, max_width=1200, max_height=800)
    container = ContainerRect(width=3000, height=3000)
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(400, 300, PointerTarget.RESIZE_HANDLE))
    assert ctrl.pointer_move(move(4000, 4000)) == Size(width=1200, height=800)
    await ctrl.pointer_up()


@pytest.mark.asyncio
async def test_controls_region_never_starts_a_gesture(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    assert ctrl.pointer_down(down(390, 5, PointerTarget.CONTROLS)) is False
    assert ctrl.mode == InteractionMode.IDLE
    assert ctrl.pointer_move(move(100, 100)) is None
    assert await ctrl.pointer_up() is False
    assert client.calls == []


@pytest.mark.asyncio
async def test_stray_move_without_session_is_silent(store, client, container, settings):
    ctrl, sync = make_controller(store, "a", container, settings)

    assert ctrl.pointer_move(move(300, 300)) is None
    assert not sync.has_pending("a")
    assert store.get_widget("a").position == Position(x=0, y=0)


@pytest.mark.asyncio
async def test_second_pointer_down_is_ignored_while_active(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(0, 0))
    assert ctrl.pointer_down(down(400, 300, PointerTarget.RESIZE_HANDLE)) is False
    assert ctrl.mode == InteractionMode.DRAGGING
    await ctrl.pointer_up()


@pytest.mark.asyncio
async def test_nav_button_drags_with_intrinsic_size_and_cannot_resize(store, client, container, settings):
    ctrl, _ = make_controller(store, "nav1", container, settings)

    assert ctrl.pointer_down(down(25, 25, PointerTarget.RESIZE_HANDLE)) is False

    assert ctrl.pointer_down(down(25, 25)) is True
    # 1000 - 150 nav button width
    assert ctrl.pointer_move(move(2000, 25)) == Position(x=850, y=20)
    await ctrl.pointer_up()


@pytest.mark.asyncio
async def test_click_without_move_does_not_persist(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(10, 10))
    assert await ctrl.pointer_up() is True
    assert client.calls == []


@pytest.mark.asyncio
async def test_failed_final_commit_rolls_back_and_returns_to_idle(store, client, container, settings, callbacks):
    _, on_error = callbacks
    ctrl, _ = make_controller(store, "a", container, settings)
    client.fail = True

    ctrl.pointer_down(down(0, 0))
    ctrl.pointer_move(move(200, 100))
    assert store.get_widget("a").position == Position(x=200, y=100)

    assert await ctrl.pointer_up() is False
    assert ctrl.mode == InteractionMode.IDLE
    assert store.get_widget("a").position == Position(x=0, y=0)
    on_error.assert_called_once_with("a", "Failed to save position")


@pytest.mark.asyncio
async def test_cancel_still_flushes_last_visible_geometry(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(0, 0))
    ctrl.pointer_move(move(100, 100))
    assert await ctrl.cancel() is True

    assert ctrl.mode == InteractionMode.IDLE
    assert client.last_widget("a").position == Position(x=100, y=100)


@pytest.mark.asyncio
async def test_teardown_mid_gesture_commits(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(400, 300, PointerTarget.RESIZE_HANDLE))
    ctrl.pointer_move(move(500, 400))
    await ctrl.teardown()

    assert not ctrl.is_active
    assert client.last_widget("a").size == Size(width=500, height=400)


@pytest.mark.asyncio
async def test_pointer_up_with_event_applies_it_as_last_frame(store, client, container, settings):
    ctrl, _ = make_controller(store, "a", container, settings)

    ctrl.pointer_down(down(0, 0))
    ctrl.pointer_move(move(40, 40))
    await ctrl.pointer_up(move(120, 80))

    assert len(client.calls) == 1
    assert client.last_widget("a").position == Position(x=120, y=80)
