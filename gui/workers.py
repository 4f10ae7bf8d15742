"""
Background Workers for ReportCite.

This module provides QRunnable-based workers for:
- DocumentLoadWorker: one-shot document open, reports the page count
- PageRenderWorker: rasterises the requested page at the viewport width
"""

import logging
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal, QRunnable, QThreadPool

from gui.pdf_renderer import PDFRenderer, open_document, rasterize_page, width_key

logger = logging.getLogger(__name__)


class DocumentLoadSignals(QObject):
    """Signals for DocumentLoadWorker (QRunnable can't have signals directly)."""

    loaded = pyqtSignal(int)  # page_count
    failed = pyqtSignal(str)


class DocumentLoadWorker(QRunnable):
    """Runs PDFRenderer.load off the UI thread and reports the page count."""

    def __init__(self, renderer: PDFRenderer, file_path: str):
        super().__init__()
        self.renderer = renderer
        self.file_path = file_path
        self.signals = DocumentLoadSignals()
        self.setAutoDelete(True)

    def run(self):
        try:
            page_count = self.renderer.load(self.file_path)
        except Exception as e:
            logger.exception("Loading %s failed", self.file_path)
            self.signals.failed.emit(str(e))
            return
        self.signals.loaded.emit(page_count)


class PageRenderSignals(QObject):
    """Signals for PageRenderWorker."""

    # page_number, width_key (-1 = natural size), image
    finished = pyqtSignal(int, int, object)
    failed = pyqtSignal(int, str)  # page_number, message


class PageRenderWorker(QRunnable):
    """
    Background worker that rasterises one PDF page into a QImage.

    Uses QImage (thread-safe) rather than QPixmap; the caller converts to
    QPixmap on the main thread. A newer request supersedes this one via
    cancel(); a cancelled worker emits nothing.
    """

    def __init__(self, file_path: str, page_number: int, width: Optional[float]):
        super().__init__()
        self.file_path = file_path
        self.page_number = page_number
        self.width = width
        self.signals = PageRenderSignals()
        self._cancelled = False
        self.setAutoDelete(True)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        if self._cancelled:
            return

        try:
            doc = open_document(self.file_path)
            try:
                image = rasterize_page(doc, self.page_number, self.width)
            finally:
                doc.close()
        except Exception as e:
            if not self._cancelled:
                logger.exception("Rendering page %d failed", self.page_number)
                self.signals.failed.emit(self.page_number, str(e))
            return

        if not self._cancelled:
            key = width_key(self.width)
            self.signals.finished.emit(
                self.page_number, -1 if key is None else key, image
            )


# Global thread pool for page rendering
_render_pool = None


def get_render_pool() -> QThreadPool:
    """Get or create the page render thread pool."""
    global _render_pool
    if _render_pool is None:
        _render_pool = QThreadPool()
        _render_pool.setMaxThreadCount(2)
    return _render_pool
