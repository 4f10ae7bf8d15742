"""
Main Application Window for ReportCite.

This module provides the primary UI controller that integrates:
- The report viewer (one page at a time, scaled to the column width)
- The analysis panel with clickable citation markers
- Background loading/rendering via the workers module
- SyncController, which decides what page and highlight to show
"""

import logging
from typing import Optional

from PyQt6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSplitter,
    QScrollArea,
    QStackedWidget,
    QApplication,
    QFrame,
)
from PyQt6.QtGui import QColor, QPalette, QPixmap
from PyQt6.QtCore import (
    Qt,
    QEvent,
    QPoint,
    QTimer,
    QPropertyAnimation,
    QEasingCurve,
)

from citation_logic import DEFAULT_CITATIONS, CitationRegistry
from sync_logic import SyncController
from gui.widgets import AnalysisPanel, PDFPageLabel
from gui.workers import DocumentLoadWorker, PageRenderWorker, get_render_pool
from gui.pdf_renderer import PDFRenderer, width_key

logger = logging.getLogger(__name__)


# ============================================================================
# Modern Color Palette (Catppuccin-inspired)
# ============================================================================
class Theme:
    """Modern dark theme color definitions."""

    BASE = "#1e1e2e"
    MANTLE = "#181825"
    CRUST = "#11111b"
    SURFACE0 = "#313244"
    SURFACE1 = "#45475a"
    SURFACE2 = "#585b70"

    TEXT = "#cdd6f4"
    SUBTEXT0 = "#a6adc8"
    OVERLAY0 = "#6c7086"

    LAVENDER = "#b4befe"
    BLUE = "#89b4fa"
    YELLOW = "#f9e2af"
    RED = "#f38ba8"
    MAUVE = "#cba6f7"


class MainWindow(QMainWindow):
    """
    Report viewer window; implements the ViewerSurface protocol.

    Handles:
    - Layout and widget initialization
    - Forwarding clicks, pagination and resize events to SyncController
    - Carrying out the controller's render / highlight / scroll requests
    """

    # One animation frame; resize handling never runs more often than this
    RESIZE_THROTTLE_MS = 16
    SCROLL_ANIMATION_MS = 450
    PAGE_MARGIN = 12

    def __init__(
        self,
        pdf_path: str,
        registry: CitationRegistry = DEFAULT_CITATIONS,
        renderer: Optional[PDFRenderer] = None,
    ):
        super().__init__()
        self.setWindowTitle("ReportCite")
        self.resize(1500, 900)
        self.apply_modern_theme()
        self.status_bar = self.statusBar()

        self.pdf_path = pdf_path
        self.renderer = renderer or PDFRenderer()
        self.controller = SyncController(self, registry)

        self._pending_render_worker: Optional[PageRenderWorker] = None
        self._requested_render: Optional[tuple] = None
        self._render_pool = get_render_pool()

        self._resize_timer = QTimer()
        self._resize_timer.setSingleShot(True)
        self._resize_timer.setInterval(self.RESIZE_THROTTLE_MS)
        self._resize_timer.timeout.connect(self.controller.on_container_resized)

        self.init_ui()

        self._scroll_animation = QPropertyAnimation(
            self.page_scroll.verticalScrollBar(), b"value", self
        )
        self._scroll_animation.setDuration(self.SCROLL_ANIMATION_MS)
        self._scroll_animation.setEasingCurve(QEasingCurve.Type.OutCubic)
        self._scroll_animation.finished.connect(self.controller.on_scroll_finished)

        self.update_pagination(1, None, False, False)

    def apply_modern_theme(self):
        """Apply modern Catppuccin-inspired dark theme."""
        palette = QPalette()
        palette.setColor(QPalette.ColorRole.Window, QColor(Theme.BASE))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(Theme.TEXT))
        palette.setColor(QPalette.ColorRole.Base, QColor(Theme.MANTLE))
        palette.setColor(QPalette.ColorRole.Text, QColor(Theme.TEXT))
        palette.setColor(QPalette.ColorRole.Button, QColor(Theme.SURFACE0))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(Theme.TEXT))
        palette.setColor(QPalette.ColorRole.Highlight, QColor(Theme.MAUVE))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor(Theme.CRUST))
        palette.setColor(QPalette.ColorRole.Link, QColor(Theme.BLUE))
        QApplication.setPalette(palette)

        QApplication.instance().setStyleSheet(f"""
            QPushButton {{
                background-color: {Theme.SURFACE0};
                border: 1px solid {Theme.SURFACE1};
                border-radius: 6px;
                padding: 6px 14px;
                color: {Theme.TEXT};
                font-weight: 500;
            }}
            QPushButton:hover {{
                background-color: {Theme.SURFACE1};
                border-color: {Theme.MAUVE};
            }}
            QPushButton:pressed {{
                background-color: {Theme.SURFACE2};
            }}
            QPushButton:disabled {{
                background-color: {Theme.SURFACE0};
                color: {Theme.OVERLAY0};
            }}
            QScrollArea {{
                border: none;
                background-color: {Theme.MANTLE};
            }}
            QScrollBar:vertical {{
                background-color: {Theme.MANTLE};
                width: 12px;
                border-radius: 6px;
            }}
            QScrollBar::handle:vertical {{
                background-color: {Theme.SURFACE1};
                border-radius: 5px;
                min-height: 30px;
                margin: 2px;
            }}
            QScrollBar::add-line:vertical, QScrollBar::sub-line:vertical {{
                height: 0px;
            }}
            QLabel {{
                color: {Theme.TEXT};
            }}
            QStatusBar {{
                background-color: {Theme.CRUST};
                color: {Theme.SUBTEXT0};
            }}
            QSplitter::handle:horizontal {{
                background-color: {Theme.SURFACE0};
                width: 3px;
            }}
        """)

    def init_ui(self):
        splitter = QSplitter(Qt.Orientation.Horizontal)
        self.setCentralWidget(splitter)

        # Left column: toolbar + page viewer
        pdf_column = QWidget()
        pdf_layout = QVBoxLayout(pdf_column)
        pdf_layout.setContentsMargins(8, 8, 8, 8)
        pdf_layout.setSpacing(6)

        toolbar = QHBoxLayout()
        self.btn_prev = QPushButton("← Prev")
        self.btn_prev.clicked.connect(self.controller.go_to_previous_page)
        self.lbl_page = QLabel()
        self.lbl_page.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.btn_next = QPushButton("Next →")
        self.btn_next.clicked.connect(self.controller.go_to_next_page)
        toolbar.addStretch()
        toolbar.addWidget(self.btn_prev)
        toolbar.addWidget(self.lbl_page)
        toolbar.addWidget(self.btn_next)
        toolbar.addStretch()
        pdf_layout.addLayout(toolbar)

        self.viewer_stack = QStackedWidget()

        self.lbl_loading = QLabel("Loading Report...")
        self.lbl_loading.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.lbl_loading.setStyleSheet(f"color: {Theme.SUBTEXT0}; font-size: 16px;")
        self.viewer_stack.addWidget(self.lbl_loading)

        self.page_scroll = QScrollArea()
        self.page_scroll.setWidgetResizable(True)
        self.page_scroll.setFrameShape(QFrame.Shape.NoFrame)
        # A scroll bar appearing/disappearing would change the measured width
        self.page_scroll.setVerticalScrollBarPolicy(
            Qt.ScrollBarPolicy.ScrollBarAlwaysOn
        )
        self.page_container = QWidget()
        container_layout = QVBoxLayout(self.page_container)
        container_layout.setContentsMargins(
            self.PAGE_MARGIN, self.PAGE_MARGIN, self.PAGE_MARGIN, self.PAGE_MARGIN
        )
        self.page_label = PDFPageLabel()
        container_layout.addWidget(
            self.page_label, alignment=Qt.AlignmentFlag.AlignHCenter
        )
        container_layout.addStretch()
        self.page_scroll.setWidget(self.page_container)
        self.page_scroll.viewport().installEventFilter(self)
        self.viewer_stack.addWidget(self.page_scroll)

        self.lbl_error = QLabel()
        self.lbl_error.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.lbl_error.setWordWrap(True)
        self.lbl_error.setStyleSheet(f"color: {Theme.RED}; font-size: 15px;")
        self.viewer_stack.addWidget(self.lbl_error)

        pdf_layout.addWidget(self.viewer_stack, 1)

        # Right column: analysis text
        sidebar_scroll = QScrollArea()
        sidebar_scroll.setWidgetResizable(True)
        sidebar_scroll.setFrameShape(QFrame.Shape.NoFrame)
        sidebar_scroll.setHorizontalScrollBarPolicy(
            Qt.ScrollBarPolicy.ScrollBarAlwaysOff
        )
        self.analysis_panel = AnalysisPanel()
        self.analysis_panel.citationClicked.connect(self.controller.on_citation_activated)
        sidebar_scroll.setWidget(self.analysis_panel)

        splitter.addWidget(pdf_column)
        splitter.addWidget(sidebar_scroll)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)

    # ------------------------------------------------------------------
    # Document loading
    # ------------------------------------------------------------------

    def start_loading(self):
        self.viewer_stack.setCurrentWidget(self.lbl_loading)
        self.status_bar.showMessage(f"Loading {self.pdf_path}...")
        worker = DocumentLoadWorker(self.renderer, self.pdf_path)
        worker.signals.loaded.connect(self._on_document_loaded)
        worker.signals.failed.connect(self.controller.on_document_load_error)
        self._render_pool.start(worker)

    def _on_document_loaded(self, page_count: int):
        self.renderer.invalidate_cache(self.pdf_path)
        self.viewer_stack.setCurrentWidget(self.page_scroll)
        self.status_bar.showMessage(f"Loaded {page_count} pages.", 3000)
        # First width measurement, before the initial page render
        self.controller.on_container_resized()
        self.controller.on_document_loaded(page_count)

    # ------------------------------------------------------------------
    # ViewerSurface
    # ------------------------------------------------------------------

    def render_page(self, page_number: int, width: Optional[float]) -> None:
        key = width_key(width)
        self._requested_render = (page_number, key)

        pixmap = self.renderer.get_cached_pixmap(self.pdf_path, page_number, width)
        if pixmap is not None:
            self._cancel_pending_render()
            self._apply_rendered_page(page_number, pixmap)
            return

        self._cancel_pending_render()
        worker = PageRenderWorker(self.pdf_path, page_number, width)
        worker.signals.finished.connect(self._on_page_rendered)
        worker.signals.failed.connect(self._on_page_render_failed)
        self._pending_render_worker = worker
        self._render_pool.start(worker)

    def show_highlight(self, rect) -> None:
        self.page_label.set_highlight(rect)

    def scroll_highlight_into_view(self) -> None:
        # Run after the layout pass that places the new pixmap and overlay
        QTimer.singleShot(0, self._animate_scroll_to_highlight)

    def show_load_error(self, message: str) -> None:
        self._cancel_pending_render()
        self.page_label.clear_page()
        self.lbl_error.setText(message)
        self.viewer_stack.setCurrentWidget(self.lbl_error)
        self.status_bar.showMessage("Failed to load the report.")

    def update_pagination(
        self,
        current_page: int,
        total_pages: Optional[int],
        can_prev: bool,
        can_next: bool,
    ) -> None:
        total = str(total_pages) if total_pages is not None else "--"
        self.lbl_page.setText(f"Page <b>{current_page}</b> of {total}")
        self.btn_prev.setEnabled(can_prev)
        self.btn_next.setEnabled(can_next)

    def update_citation_markers(self, active_ids: frozenset) -> None:
        self.analysis_panel.set_active_ids(active_ids)

    def measure_container_width(self) -> Optional[float]:
        width = self.page_scroll.viewport().width() - 2 * self.PAGE_MARGIN
        if width <= 0:
            return None
        return float(width)

    # ------------------------------------------------------------------
    # Render plumbing
    # ------------------------------------------------------------------

    def _cancel_pending_render(self) -> None:
        if self._pending_render_worker is not None:
            self._pending_render_worker.cancel()
            self._pending_render_worker = None

    def _is_latest_request(self, page_number: int, key: Optional[int]) -> bool:
        return self._requested_render == (page_number, key)

    def _on_page_rendered(self, page_number: int, key: int, image) -> None:
        """Main-thread callback: convert QImage -> QPixmap, cache, display."""
        width = None if key < 0 else key
        if self._is_latest_request(page_number, width):
            self._pending_render_worker = None
        pixmap = QPixmap.fromImage(image)
        self.renderer.store_pixmap(self.pdf_path, page_number, width, pixmap)

        # Discard if a newer request for another width has been issued
        if self._requested_render is not None and self._requested_render[1] != width:
            return
        self._apply_rendered_page(page_number, pixmap)

    def _apply_rendered_page(self, page_number: int, pixmap: QPixmap) -> None:
        if page_number == self.controller.state.current_page:
            self.page_label.set_page(page_number, pixmap)
        self.controller.on_page_rendered(page_number, pixmap.width(), pixmap.height())

    def _on_page_render_failed(self, page_number: int, message: str) -> None:
        if self._requested_render is not None and self._requested_render[0] == page_number:
            self._pending_render_worker = None
        if page_number != self.controller.state.current_page:
            return
        self.controller.on_document_render_error(message)

    def _animate_scroll_to_highlight(self) -> None:
        overlay = self.page_label.overlay
        if not overlay.isVisible():
            return
        top = overlay.mapTo(self.page_container, QPoint(0, 0)).y()
        viewport_height = self.page_scroll.viewport().height()
        bar = self.page_scroll.verticalScrollBar()
        target = int(top + overlay.height() / 2 - viewport_height / 2)
        target = max(bar.minimum(), min(bar.maximum(), target))

        self._scroll_animation.stop()
        self._scroll_animation.setStartValue(bar.value())
        self._scroll_animation.setEndValue(target)
        self._scroll_animation.start()

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------

    def eventFilter(self, obj, event):
        if obj is self.page_scroll.viewport() and event.type() == QEvent.Type.Resize:
            # Throttle: at most one width update per frame
            if not self._resize_timer.isActive():
                self._resize_timer.start()
        return super().eventFilter(obj, event)

    def keyPressEvent(self, event):
        """Keyboard pagination."""
        key = event.key()
        if key in (Qt.Key.Key_Left, Qt.Key.Key_PageUp):
            self.controller.go_to_previous_page()
        elif key in (Qt.Key.Key_Right, Qt.Key.Key_PageDown):
            self.controller.go_to_next_page()
        elif key == Qt.Key.Key_Home:
            self.controller.go_to_first_page()
        elif key == Qt.Key.Key_End:
            self.controller.go_to_last_page()
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    def closeEvent(self, event):
        """Clean up resources on window close."""
        self._cancel_pending_render()
        self._resize_timer.stop()
        self._scroll_animation.stop()
        self.renderer.cleanup()
        super().closeEvent(event)
