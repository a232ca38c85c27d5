"""
Tests for the editing session and pointer interaction.

With the default render scale of 1.5 and zoom 1, a client coordinate of
150 maps to page point 100.
"""
import pytest

from pdfdesk.controllers import InteractionController
from pdfdesk.core.annotations import DrawAnnotation, StrokeKind, TextAnnotation
from pdfdesk.core.errors import ParseError
from pdfdesk.core.geometry import CanvasOrigin
from pdfdesk.core.render import RenderCompositor
from pdfdesk.core.session import EditorSession, Tool


def client(x, y, factor=1.5):
    """Page point to client coordinates for an origin at (0, 0)."""
    return x * factor, y * factor


@pytest.fixture
def controller(session):
    return InteractionController(session)


# ═══════════════════════════════════════════════════════════════════════════════
# SESSION
# ═══════════════════════════════════════════════════════════════════════════════


class TestEditorSession:

    def test_failed_open_keeps_previous_state(self, session):
        document = session.document
        session.store.add_text(0, 10, 10, "keep me")
        with pytest.raises(ParseError):
            session.open_document(b"not a pdf")
        assert session.document is document
        assert session.store.count() == 1

    def test_open_replaces_annotations(self, session, make_pdf):
        session.store.add_text(0, 10, 10, "old")
        generation = session.generation
        session.open_document(make_pdf("new"))
        assert session.store.count() == 0
        assert session.generation > generation
        assert not session.is_current(generation)

    def test_zoom_is_clamped(self, session):
        assert session.set_zoom(10) == 3.0
        assert session.set_zoom(0.1) == 0.5
        session.set_zoom(1.0)
        assert session.zoom_in() == 1.25
        assert session.zoom_out() == 1.0

    def test_zoom_does_not_touch_stored_coordinates(self, session):
        ann_id = session.store.add_text(0, 100, 200, "fixed")
        for zoom in (0.5, 2.0, 3.0):
            session.set_zoom(zoom)
            ann = session.store.get(ann_id)
            assert (ann.x, ann.y) == (100, 200)
            assert session.transform().pdf_to_screen(ann.x, ann.y) == pytest.approx(
                (100 * zoom * 1.5, 200 * zoom * 1.5))

    def test_page_navigation_is_clamped(self, session):
        session.set_current_page(5)
        assert session.current_page == 1
        session.set_current_page(-3)
        assert session.current_page == 0

    def test_only_text_can_be_edited(self, session):
        draw_id = session.store.add_drawing(0, [(0, 0), (1, 1)])
        with pytest.raises(ValueError):
            session.start_editing(draw_id)

    def test_one_annotation_in_edit_mode_at_a_time(self, session):
        first = session.store.add_text(0, 10, 10, "first")
        second = session.store.add_text(0, 10, 100, "second")
        changes = []
        session.editing_changed.connect(changes.append)

        session.start_editing(first)
        session.start_editing(second)

        assert session.editing_id == second
        assert changes == [first, second]
        overlay = RenderCompositor(session).compose().overlay
        assert {item.annotation_id: item.editing for item in overlay} == {
            first: False, second: True}

    def test_removing_edited_annotation_stops_editing(self, session):
        text_id = session.store.add_text(0, 0, 0, "x")
        session.start_editing(text_id)
        session.store.remove(text_id)
        assert session.editing_id is None

    def test_reset(self, session):
        session.set_tool(Tool.DRAW)
        session.store.add_text(0, 0, 0, "x")
        session.reset()
        assert session.document is None
        assert session.store.count() == 0
        assert session.active_tool == Tool.SELECT


# ═══════════════════════════════════════════════════════════════════════════════
# TOOLS
# ═══════════════════════════════════════════════════════════════════════════════


class TestDispatch:

    def test_every_tool_has_a_handler(self, session):
        InteractionController(session)

    def test_missing_handler_is_rejected(self, session):
        from pdfdesk.controllers.interaction_controller import HANDLERS
        with pytest.raises(TypeError, match="erase"):
            InteractionController(session, handlers=HANDLERS[:-1])

    def test_events_ignored_without_document(self):
        session = EditorSession()
        controller = InteractionController(session)
        session.set_tool(Tool.TEXT)
        controller.pointer_down(10, 10)
        assert session.store.count() == 0

    def test_origin_is_applied(self, session, controller):
        assert controller.to_page(160, 170, CanvasOrigin(10, 20)) == (100, 100)


class TestTextTool:

    def test_click_creates_placeholder_and_returns_to_select(self, session, controller):
        controller.set_tool(Tool.TEXT)
        controller.pointer_down(*client(100, 100))

        [ann] = session.store.list_for_page(0)
        assert isinstance(ann, TextAnnotation)
        assert (ann.x, ann.y) == pytest.approx((100, 100))
        assert ann.text == "Click to edit"
        assert session.editing_id == ann.id
        assert session.active_tool == Tool.SELECT

    def test_click_on_existing_text_opens_it(self, session, controller):
        existing = session.store.add_text(0, 100, 100, "hello")
        controller.set_tool(Tool.TEXT)
        controller.pointer_down(*client(105, 105))
        assert session.store.count() == 1
        assert session.editing_id == existing

    def test_uses_session_text_settings(self, session, controller):
        session.color = (255, 0, 0)
        session.font_size = 24
        controller.set_tool(Tool.TEXT)
        controller.pointer_down(*client(10, 10))
        ann = session.store.all()[0]
        assert ann.color == (255, 0, 0)
        assert ann.font_size == 24

    def test_double_click_never_creates(self, session, controller):
        for tool in Tool:
            session.set_tool(tool)
            assert controller.double_click(*client(300, 300)) is None
        assert session.store.count() == 0

    def test_double_click_opens_text(self, session, controller):
        text_id = session.store.add_text(0, 100, 100, "hello")
        assert controller.double_click(*client(110, 110)) == text_id
        assert session.editing_id == text_id

    def test_double_click_moves_edit_mode(self, session, controller):
        first = session.store.add_text(0, 100, 100, "hello")
        second = session.store.add_text(0, 100, 300, "world")
        assert controller.double_click(*client(110, 105)) == first
        assert controller.double_click(*client(110, 305)) == second
        assert session.editing_id == second
        editing = [item.annotation_id for item in RenderCompositor(session).compose().overlay
                   if item.editing]
        assert editing == [second]

    def test_finish_editing(self, session, controller):
        text_id = session.store.add_text(0, 100, 100, "hello")
        session.start_editing(text_id)
        controller.finish_editing("world")
        assert session.store.get(text_id).text == "world"
        assert session.editing_id is None

        session.start_editing(text_id)
        controller.finish_editing("   ")
        assert session.store.get(text_id) is None


class TestStrokeTools:

    def test_single_click_leaves_no_stroke(self, session, controller):
        controller.set_tool(Tool.DRAW)
        controller.pointer_down(*client(10, 10))
        controller.pointer_up(*client(10, 10))
        assert session.store.count() == 0
        assert controller.pending_stroke is None

    def test_drag_creates_pen_stroke(self, session, controller):
        controller.set_tool(Tool.DRAW)
        controller.pointer_down(*client(10, 10))
        controller.pointer_move(*client(20, 20))
        controller.pointer_move(*client(30, 10))
        assert len(controller.pending_stroke.points) == 3
        controller.pointer_up(*client(30, 10))

        [stroke] = session.store.all()
        assert isinstance(stroke, DrawAnnotation)
        assert stroke.stroke_kind == StrokeKind.PEN
        assert stroke.points == ((10.0, 10.0), (20.0, 20.0), (30.0, 10.0))
        assert controller.pending_stroke is None

    def test_highlight_kind(self, session, controller):
        controller.set_tool(Tool.HIGHLIGHT)
        controller.pointer_down(*client(10, 10))
        controller.pointer_move(*client(50, 10))
        controller.pointer_up(*client(50, 10))
        assert session.store.all()[0].stroke_kind == StrokeKind.HIGHLIGHT

    def test_leaving_canvas_finishes_stroke(self, session, controller):
        controller.set_tool(Tool.DRAW)
        controller.pointer_down(*client(10, 10))
        controller.pointer_move(*client(40, 40))
        controller.pointer_leave()
        assert session.store.count() == 1

    def test_switching_tool_drops_pending_stroke(self, session, controller):
        controller.set_tool(Tool.DRAW)
        controller.pointer_down(*client(10, 10))
        controller.pointer_move(*client(40, 40))
        controller.set_tool(Tool.SELECT)
        assert controller.pending_stroke is None
        assert session.store.count() == 0


class TestEraseTool:

    def test_threshold_boundary(self, session, controller):
        stroke_id = session.store.add_drawing(0, [(100, 100), (150, 100)])
        controller.set_tool(Tool.ERASE)

        controller.pointer_down(*client(100, 120.5))
        assert session.store.get(stroke_id) is not None

        controller.pointer_down(*client(100, 120))
        assert session.store.get(stroke_id) is None

    def test_removes_topmost_stroke_only(self, session, controller):
        below = session.store.add_drawing(0, [(100, 100), (110, 100)])
        above = session.store.add_drawing(0, [(100, 105), (110, 105)])
        controller.set_tool(Tool.ERASE)
        controller.pointer_down(*client(100, 102))
        assert session.store.get(above) is None
        assert session.store.get(below) is not None

    def test_ignores_text(self, session, controller):
        session.store.add_text(0, 100, 100, "text")
        controller.set_tool(Tool.ERASE)
        controller.pointer_down(*client(101, 101))
        assert session.store.count() == 1


class TestSelectTool:

    def test_drag_moves_text_and_is_one_undo_step(self, session, controller):
        text_id = session.store.add_text(0, 100, 100, "hello")
        controller.pointer_down(*client(110, 105))
        controller.pointer_move(*client(160, 155))
        controller.pointer_move(*client(210, 205))
        controller.pointer_up(*client(210, 205))

        ann = session.store.get(text_id)
        assert (ann.x, ann.y) == pytest.approx((200, 200))

        session.store.undo()
        ann = session.store.get(text_id)
        assert (ann.x, ann.y) == (100, 100)

    def test_topmost_overlay_wins(self, session, controller, png_bytes):
        text_id = session.store.add_text(0, 100, 100, "hello")
        image_id = session.store.add_image(0, 90, 90, 50, 50, png_bytes)
        assert controller.overlay_annotation_at(105, 105).id == image_id
        session.store.remove(image_id)
        assert controller.overlay_annotation_at(105, 105).id == text_id

    def test_click_elsewhere_stops_editing(self, session, controller):
        text_id = session.store.add_text(0, 100, 100, "hello")
        session.start_editing(text_id)
        controller.pointer_down(*client(400, 400))
        assert session.editing_id is None

    def test_image_tool_ignores_clicks(self, session, controller):
        controller.set_tool(Tool.IMAGE)
        controller.pointer_down(*client(10, 10))
        controller.pointer_up(*client(10, 10))
        assert session.store.count() == 0


class TestPlacement:

    def test_image_fits_box_keeping_aspect(self, session, controller, make_image):
        image_id = controller.place_image(make_image(400, 100))
        ann = session.store.get(image_id)
        assert (ann.x, ann.y) == (50, 50)
        assert (ann.width, ann.height) == pytest.approx((200, 50))

    def test_small_image_is_not_upscaled(self, session, controller, make_image):
        ann = session.store.get(controller.place_image(make_image(40, 30)))
        assert (ann.width, ann.height) == (40, 30)

    def test_signature_fills_box(self, session, controller, make_image):
        ann = session.store.get(controller.place_signature(make_image(20, 10)))
        assert (ann.width, ann.height) == pytest.approx((120, 60))
        ann = session.store.get(controller.place_signature(make_image(400, 100)))
        assert (ann.width, ann.height) == pytest.approx((150, 37.5))

    def test_undecodable_image(self, session, controller):
        with pytest.raises(ParseError):
            controller.place_image(b"definitely not an image")
        assert session.store.count() == 0

    def test_image_goes_to_current_page(self, session, controller, png_bytes):
        session.set_current_page(1)
        ann = session.store.get(controller.place_image(png_bytes))
        assert ann.page_index == 1
