"""
Viewer Synchronization Controller.

Routes citation clicks, pagination, resize events and render callbacks into
ViewerState and tells the viewer surface what to draw. Contains no Qt code;
the GUI implements ViewerSurface and forwards its events here.
"""

import enum
import logging
from typing import Optional, Protocol

from citation_logic import (
    DEFAULT_CITATIONS,
    CitationId,
    CitationRegistry,
    ConcreteRect,
    HighlightProjector,
    ViewerState,
)

logger = logging.getLogger(__name__)


class ViewerPhase(enum.Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    HIGHLIGHTED = "highlighted"
    SETTLED = "settled"
    STALE = "stale"


class ViewerSurface(Protocol):
    """What the controller needs from the rendering and presentation side."""

    def render_page(self, page_number: int, width: Optional[float]) -> None: ...

    def show_highlight(self, rect: Optional[ConcreteRect]) -> None: ...

    def scroll_highlight_into_view(self) -> None: ...

    def show_load_error(self, message: str) -> None: ...

    def update_pagination(
        self,
        current_page: int,
        total_pages: Optional[int],
        can_prev: bool,
        can_next: bool,
    ) -> None: ...

    def update_citation_markers(self, active_ids: frozenset) -> None: ...

    def measure_container_width(self) -> Optional[float]: ...


class SyncController:
    """
    Single owner of ViewerState for one viewer session.

    All methods are called from the UI event loop, one event at a time.
    None of them raise on bad input coming from the UI.
    """

    def __init__(
        self,
        surface: ViewerSurface,
        registry: CitationRegistry = DEFAULT_CITATIONS,
        projector: Optional[HighlightProjector] = None,
    ):
        self.surface = surface
        self.registry = registry
        self.projector = projector or HighlightProjector()
        self.state = ViewerState()

        # Size of the page surface currently displayed for state.current_page
        self._rendered_size: Optional[tuple[float, float]] = None
        self._sub_phase = ViewerPhase.IDLE
        self._scroll_armed = False
        self._load_failed = False

    # ------------------------------------------------------------------
    # Derived read-only views
    # ------------------------------------------------------------------

    @property
    def phase(self) -> ViewerPhase:
        if self.state.active_citation is None:
            return ViewerPhase.IDLE
        if not self.state.highlight_visible:
            return ViewerPhase.STALE
        return self._sub_phase

    @property
    def load_failed(self) -> bool:
        return self._load_failed

    @property
    def highlight_rect(self) -> Optional[ConcreteRect]:
        if not self.state.highlight_visible or self._rendered_size is None:
            return None
        width, height = self._rendered_size
        return self.projector.project(self.state.active_citation, width, height)

    def is_citation_active(self, citation_id: CitationId) -> bool:
        target = self.registry.lookup(citation_id)
        return target is not None and target == self.state.active_citation

    # ------------------------------------------------------------------
    # Document collaborator callbacks
    # ------------------------------------------------------------------

    def on_document_loaded(self, page_count: int) -> None:
        try:
            self.state.on_document_loaded(page_count)
        except ValueError as e:
            self.on_document_load_error(e)
            return
        logger.info("Document loaded with %d pages", page_count)
        self._refresh_controls()
        self._request_render()

    def on_document_load_error(self, error) -> None:
        logger.error("Failed to load document: %s", error)
        self._load_failed = True
        self._rendered_size = None
        self.surface.show_highlight(None)
        self.surface.show_load_error(f"Failed to load document: {error}")

    def on_document_render_error(self, error) -> None:
        # Same persistent state as a load failure; no automatic retry
        self.on_document_load_error(error)

    def on_page_rendered(
        self, page_number: int, rendered_width: float, rendered_height: float
    ) -> None:
        if self._load_failed:
            return
        if page_number != self.state.current_page:
            logger.debug(
                "Discarding render of page %d (current page is %d)",
                page_number,
                self.state.current_page,
            )
            return
        self._rendered_size = (rendered_width, rendered_height)
        self._refresh_highlight()

    # ------------------------------------------------------------------
    # User input
    # ------------------------------------------------------------------

    def on_citation_activated(self, citation_id: CitationId) -> None:
        target = self.registry.lookup(citation_id)
        if target is None:
            logger.warning("Citation %r is not defined; clearing highlight", citation_id)
            self.state.clear_citation()
            self._scroll_armed = False
            self._sub_phase = ViewerPhase.IDLE
            self._refresh_highlight()
            self._refresh_controls()
            return

        previous_page = self.state.current_page
        self.state.activate_citation(target)
        if self.state.current_page != previous_page:
            self._rendered_size = None
        self._sub_phase = ViewerPhase.NAVIGATING
        self._scroll_armed = True
        logger.debug(
            "Citation %d -> page %d", citation_id, self.state.current_page
        )
        self._refresh_controls()
        self.surface.show_highlight(None)
        self._request_render()

    def go_to_page(self, page: int) -> bool:
        previous_page = self.state.current_page
        if self.state.go_to_page(page) == previous_page:
            return False
        self._rendered_size = None
        # Only a fresh activation scrolls; manual navigation cancels a pending one
        self._scroll_armed = False
        if self.state.active_citation is not None:
            # Away from the target this reads as STALE; coming back shows it again
            self._sub_phase = ViewerPhase.HIGHLIGHTED
        self._refresh_controls()
        self.surface.show_highlight(None)
        self._request_render()
        return True

    def go_to_previous_page(self) -> bool:
        if not self.state.can_go_prev:
            return False
        return self.go_to_page(self.state.current_page - 1)

    def go_to_next_page(self) -> bool:
        if not self.state.can_go_next:
            return False
        return self.go_to_page(self.state.current_page + 1)

    def go_to_first_page(self) -> bool:
        return self.go_to_page(1)

    def go_to_last_page(self) -> bool:
        if self.state.total_pages is None:
            return False
        return self.go_to_page(self.state.total_pages)

    def on_container_resized(self) -> None:
        width = self.surface.measure_container_width()
        if width is None or width < 0:
            return
        if width == self.state.viewport_width:
            return
        self.state.set_viewport_width(width)
        self._request_render()

    # ------------------------------------------------------------------
    # Highlight / scroll lifecycle
    # ------------------------------------------------------------------

    def on_highlight_rendered(self) -> None:
        if not self._scroll_armed or self.highlight_rect is None:
            return
        self._scroll_armed = False
        self.surface.scroll_highlight_into_view()

    def on_scroll_finished(self) -> None:
        if self.phase is ViewerPhase.HIGHLIGHTED:
            self._sub_phase = ViewerPhase.SETTLED

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request_render(self) -> None:
        if self._load_failed or self.state.total_pages is None:
            return
        self.surface.render_page(self.state.current_page, self.state.viewport_width)

    def _refresh_highlight(self) -> None:
        rect = self.highlight_rect
        self.surface.show_highlight(rect)
        if rect is None:
            return
        if self._sub_phase is ViewerPhase.NAVIGATING:
            self._sub_phase = ViewerPhase.HIGHLIGHTED
        self.on_highlight_rendered()

    def _refresh_controls(self) -> None:
        state = self.state
        self.surface.update_pagination(
            state.current_page, state.total_pages, state.can_go_prev, state.can_go_next
        )
        self.surface.update_citation_markers(
            self.registry.ids_for_target(state.active_citation)
        )
