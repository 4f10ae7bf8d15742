import unittest
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from citation_logic import DEFAULT_CITATIONS
from sync_logic import SyncController, ViewerPhase


class FakeSurface:
    """Records every request the controller makes of the viewer."""

    def __init__(self, width=1000.0):
        self.width = width
        self.render_requests = []
        self.highlights = []
        self.scrolls = 0
        self.errors = []
        self.pagination = []
        self.markers = []

    def render_page(self, page_number, width):
        self.render_requests.append((page_number, width))

    def show_highlight(self, rect):
        self.highlights.append(rect)

    def scroll_highlight_into_view(self):
        self.scrolls += 1

    def show_load_error(self, message):
        self.errors.append(message)

    def update_pagination(self, current_page, total_pages, can_prev, can_next):
        self.pagination.append((current_page, total_pages, can_prev, can_next))

    def update_citation_markers(self, active_ids):
        self.markers.append(active_ids)

    def measure_container_width(self):
        return self.width

    @property
    def current_highlight(self):
        return self.highlights[-1] if self.highlights else None


PAGE_W, PAGE_H = 1000, 1400


class TestSyncController(unittest.TestCase):
    def setUp(self):
        self.surface = FakeSurface()
        self.controller = SyncController(self.surface, DEFAULT_CITATIONS)
        self.controller.on_container_resized()
        self.controller.on_document_loaded(20)

    def render_current(self, width=PAGE_W, height=PAGE_H):
        """Simulate the renderer finishing the most recent request."""
        page, _ = self.surface.render_requests[-1]
        self.controller.on_page_rendered(page, width, height)

    # -- activation ----------------------------------------------------

    def test_scenario_a_activation_and_projection(self):
        self.controller.on_citation_activated(1)
        state = self.controller.state
        self.assertEqual(state.current_page, 3)
        self.assertIs(state.active_citation, DEFAULT_CITATIONS.lookup(1))
        self.assertEqual(self.surface.render_requests[-1], (3, 1000.0))
        self.assertEqual(self.controller.phase, ViewerPhase.NAVIGATING)

        self.render_current()
        rect = self.surface.current_highlight
        self.assertAlmostEqual(rect.top, 301)
        self.assertAlmostEqual(rect.left, 100)
        self.assertAlmostEqual(rect.width, 800)
        self.assertAlmostEqual(rect.height, 70)
        self.assertEqual(self.surface.scrolls, 1)
        self.assertEqual(self.controller.phase, ViewerPhase.HIGHLIGHTED)

        self.controller.on_scroll_finished()
        self.assertEqual(self.controller.phase, ViewerPhase.SETTLED)

    def test_every_registered_citation_activates_its_target(self):
        for citation_id in DEFAULT_CITATIONS.ids():
            target = DEFAULT_CITATIONS.lookup(citation_id)
            self.controller.on_citation_activated(citation_id)
            self.assertEqual(self.controller.state.current_page, target.page_number)
            self.assertIs(self.controller.state.active_citation, target)
            self.assertTrue(self.controller.is_citation_active(citation_id))
            self.assertEqual(self.surface.markers[-1], frozenset({citation_id}))

    def test_scenario_b_unknown_citation(self):
        self.controller.go_to_page(7)
        with self.assertLogs("sync_logic", level="WARNING"):
            self.controller.on_citation_activated(99)
        self.assertEqual(self.controller.state.current_page, 7)
        self.assertIsNone(self.controller.state.active_citation)
        self.assertEqual(self.controller.phase, ViewerPhase.IDLE)
        self.assertEqual(self.surface.markers[-1], frozenset())

    def test_unknown_citation_clears_previous_highlight(self):
        self.controller.on_citation_activated(1)
        self.render_current()
        with self.assertLogs("sync_logic", level="WARNING"):
            self.controller.on_citation_activated(42)
        self.assertEqual(self.controller.state.current_page, 3)
        self.assertIsNone(self.surface.current_highlight)
        self.assertIsNone(self.controller.highlight_rect)

    def test_reactivation_is_idempotent_but_scrolls_again(self):
        self.controller.on_citation_activated(2)
        self.render_current()
        once = self.controller.state.snapshot()

        self.controller.on_citation_activated(2)
        self.render_current()
        self.assertEqual(self.controller.state.snapshot(), once)
        self.assertEqual(self.surface.scrolls, 2)

    def test_scroll_fires_once_per_activation(self):
        self.controller.on_citation_activated(1)
        self.render_current()
        # Resize re-renders the same page; no new scroll
        self.surface.width = 800.0
        self.controller.on_container_resized()
        self.render_current(800, 1120)
        self.assertEqual(self.surface.scrolls, 1)
        self.controller.on_highlight_rendered()
        self.assertEqual(self.surface.scrolls, 1)

    def test_activation_before_load_renders_after_load(self):
        surface = FakeSurface()
        controller = SyncController(surface, DEFAULT_CITATIONS)
        controller.on_citation_activated(3)
        self.assertEqual(surface.render_requests, [])
        self.assertEqual(controller.state.current_page, 15)
        controller.on_document_loaded(20)
        self.assertEqual(surface.render_requests[-1], (15, None))
        controller.on_page_rendered(15, 612, 792)
        self.assertIsNotNone(surface.current_highlight)
        self.assertEqual(surface.scrolls, 1)

    # -- visibility / stale -------------------------------------------

    def test_manual_navigation_makes_highlight_stale_and_back(self):
        self.controller.on_citation_activated(1)
        self.render_current()
        self.controller.on_scroll_finished()

        self.assertTrue(self.controller.go_to_next_page())
        self.assertEqual(self.controller.phase, ViewerPhase.STALE)
        self.render_current()
        self.assertIsNone(self.surface.current_highlight)
        self.assertIsNotNone(self.controller.state.active_citation)

        self.assertTrue(self.controller.go_to_previous_page())
        self.render_current()
        self.assertEqual(self.controller.phase, ViewerPhase.HIGHLIGHTED)
        self.assertIsNotNone(self.surface.current_highlight)
        # Returning to the page does not scroll again
        self.assertEqual(self.surface.scrolls, 1)

    def test_navigating_away_before_render_cancels_scroll(self):
        self.controller.on_citation_activated(1)
        self.controller.go_to_next_page()
        self.render_current()
        self.controller.go_to_previous_page()
        self.render_current()
        self.assertEqual(self.surface.scrolls, 0)
        self.assertIsNotNone(self.surface.current_highlight)

    def test_stale_render_completion_is_discarded(self):
        self.controller.on_citation_activated(1)
        self.controller.go_to_page(9)
        highlights_before = list(self.surface.highlights)
        with self.assertLogs("sync_logic", level="DEBUG"):
            self.controller.on_page_rendered(3, PAGE_W, PAGE_H)
        self.assertEqual(self.surface.highlights, highlights_before)
        self.assertEqual(self.surface.scrolls, 0)
        self.assertEqual(self.controller.state.current_page, 9)

    def test_highlight_suppressed_until_measured(self):
        self.controller.on_citation_activated(2)
        self.assertIsNone(self.controller.highlight_rect)
        self.assertIsNone(self.surface.current_highlight)
        self.controller.on_highlight_rendered()
        self.assertEqual(self.surface.scrolls, 0)

    # -- pagination ------------------------------------------------------

    def test_scenario_c_pagination_bounds(self):
        self.assertEqual(self.controller.state.current_page, 1)
        self.assertFalse(self.controller.go_to_previous_page())
        self.assertEqual(self.controller.state.current_page, 1)

        self.controller.go_to_page(20)
        requests = len(self.surface.render_requests)
        self.assertFalse(self.controller.go_to_next_page())
        self.assertEqual(self.controller.state.current_page, 20)
        self.assertEqual(len(self.surface.render_requests), requests)
        self.assertEqual(self.surface.pagination[-1], (20, 20, True, False))

    def test_next_disabled_while_page_count_unknown(self):
        surface = FakeSurface()
        controller = SyncController(surface)
        self.assertFalse(controller.go_to_next_page())
        self.assertFalse(controller.go_to_last_page())
        self.assertEqual(controller.state.current_page, 1)

    def test_first_and_last_page(self):
        self.assertTrue(self.controller.go_to_last_page())
        self.assertEqual(self.surface.render_requests[-1], (20, 1000.0))
        self.assertTrue(self.controller.go_to_first_page())
        self.assertEqual(self.controller.state.current_page, 1)

    # -- resize ----------------------------------------------------------

    def test_resize_rerenders_and_reprojects(self):
        self.controller.on_citation_activated(1)
        self.render_current()
        self.surface.width = 500.0
        self.controller.on_container_resized()
        self.assertEqual(self.controller.state.viewport_width, 500.0)
        self.assertEqual(self.surface.render_requests[-1], (3, 500.0))
        self.render_current(500, 700)
        rect = self.surface.current_highlight
        self.assertAlmostEqual(rect.left, 50)
        self.assertAlmostEqual(rect.width, 400)
        self.assertAlmostEqual(rect.top, 150.5)

    def test_resize_with_same_width_does_nothing(self):
        requests = len(self.surface.render_requests)
        self.controller.on_container_resized()
        self.assertEqual(len(self.surface.render_requests), requests)

    def test_unmeasurable_container_is_ignored(self):
        self.surface.width = None
        self.controller.on_container_resized()
        self.assertEqual(self.controller.state.viewport_width, 1000.0)

    # -- errors ----------------------------------------------------------

    def test_load_failure_is_reported_not_raised(self):
        surface = FakeSurface()
        controller = SyncController(surface)
        with self.assertLogs("sync_logic", level="ERROR"):
            controller.on_document_load_error(RuntimeError("broken file"))
        self.assertTrue(controller.load_failed)
        self.assertEqual(len(surface.errors), 1)
        self.assertIn("broken file", surface.errors[0])
        controller.on_citation_activated(1)
        self.assertEqual(surface.render_requests, [])

    def test_render_error_stops_rendering(self):
        with self.assertLogs("sync_logic", level="ERROR"):
            self.controller.on_document_render_error("page decode failed")
        self.assertTrue(self.controller.load_failed)
        requests = len(self.surface.render_requests)
        self.controller.go_to_next_page()
        self.assertEqual(len(self.surface.render_requests), requests)

    def test_invalid_page_count_becomes_load_failure(self):
        surface = FakeSurface()
        controller = SyncController(surface)
        with self.assertLogs("sync_logic", level="ERROR"):
            controller.on_document_loaded(0)
        self.assertTrue(controller.load_failed)


if __name__ == "__main__":
    unittest.main()
