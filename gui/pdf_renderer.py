"""
PDF Rendering Engine with LRU Caching.

This module is the document-rendering side of the viewer:
- Opening the report and reporting its page count
- Rasterising a single page scaled to the viewport width
- LRU-cached pixmaps so resize and Prev/Next do not re-render needlessly
"""

import fitz
from collections import OrderedDict
from typing import Optional
from PyQt6.QtGui import QImage, QPixmap


class DocumentLoadError(Exception):
    """The report could not be opened or has no pages."""


def width_key(width: Optional[float]) -> Optional[int]:
    """Cache key for a viewport width (whole pixels, None = natural size)."""
    if width is None or width <= 0:
        return None
    return int(round(width))


def zoom_for_width(page_width_pt: float, width: Optional[float]) -> float:
    """
    Zoom factor that scales a page of *page_width_pt* points to *width* pixels.

    A missing or non-positive width renders the page at its natural size.
    """
    if width is None or width <= 0 or page_width_pt <= 0:
        return 1.0
    return width / page_width_pt


def rasterize_page(doc, page_number: int, width: Optional[float]) -> QImage:
    """Render 1-indexed *page_number* of an open fitz document into a QImage."""
    page = doc[page_number - 1]
    zoom = zoom_for_width(page.rect.width, width)
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
    return QImage(
        pix.samples,
        pix.width,
        pix.height,
        pix.stride,
        QImage.Format.Format_RGB888,
    ).copy()  # Copy to own the data


def open_document(file_path: str):
    """Open *file_path* with fitz, raising DocumentLoadError on failure."""
    try:
        doc = fitz.open(file_path)
    except Exception as e:
        raise DocumentLoadError(f"{file_path}: {e}") from e
    if doc.page_count < 1:
        doc.close()
        raise DocumentLoadError(f"{file_path}: document has no pages")
    return doc


class PixmapCache:
    """
    Page pixmaps keyed by (file_path, page_number, width_key).

    Every resize produces a new width key for the same page, so entries are
    bounded by an estimated byte budget instead of a page count; the least
    recently shown page/width pair goes first.
    """

    DEFAULT_MAX_BYTES: int = 128 * 1024 * 1024  # 128 MB

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES):
        self.max_bytes = max_bytes
        # key -> (pixmap, estimated bytes)
        self._entries: OrderedDict[tuple, tuple] = OrderedDict()
        self._used_bytes: int = 0

    @staticmethod
    def estimate_bytes(pixmap) -> int:
        """4 bytes per pixel; a null pixmap costs nothing."""
        if pixmap.isNull():
            return 0
        return pixmap.width() * pixmap.height() * 4

    def get(self, key: tuple):
        entry = self._entries.get(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return entry[0]

    def put(self, key: tuple, pixmap) -> None:
        if key in self._entries:
            self._drop(key)
        size = self.estimate_bytes(pixmap)
        # The page on screen is always kept, even when larger than the budget
        while self._entries and self._used_bytes + size > self.max_bytes:
            self._drop(next(iter(self._entries)))
        self._entries[key] = (pixmap, size)
        self._used_bytes += size

    def _drop(self, key: tuple) -> None:
        _, size = self._entries.pop(key)
        self._used_bytes -= size

    def invalidate_file(self, file_path: str) -> None:
        for key in [k for k in self._entries if k[0] == file_path]:
            self._drop(key)

    def clear(self) -> None:
        self._entries.clear()
        self._used_bytes = 0

    @property
    def used_bytes(self) -> int:
        return self._used_bytes

    def __len__(self) -> int:
        return len(self._entries)


class PDFRenderer:
    """
    Document access for a single report.

    load() runs on the loader thread; the pixmap cache is only touched from
    the UI thread.
    """

    def __init__(self, max_bytes: int = PixmapCache.DEFAULT_MAX_BYTES):
        self.pixmap_cache = PixmapCache(max_bytes=max_bytes)
        self._page_count: Optional[int] = None

    @property
    def page_count(self) -> Optional[int]:
        return self._page_count

    def load(self, file_path: str) -> int:
        """
        Open the document and return its page count.

        Raises:
            DocumentLoadError: if the file cannot be opened or is empty
        """
        doc = open_document(file_path)
        try:
            page_count = doc.page_count
        finally:
            doc.close()
        self._page_count = page_count
        return page_count

    def cache_key(self, file_path: str, page_number: int, width: Optional[float]) -> tuple:
        return (file_path, page_number, width_key(width))

    def get_cached_pixmap(
        self, file_path: str, page_number: int, width: Optional[float]
    ) -> Optional[QPixmap]:
        """Return the cached pixmap for a page at a width, or None."""
        return self.pixmap_cache.get(self.cache_key(file_path, page_number, width))

    def store_pixmap(
        self, file_path: str, page_number: int, width: Optional[float], pixmap: QPixmap
    ) -> None:
        self.pixmap_cache.put(self.cache_key(file_path, page_number, width), pixmap)

    def invalidate_cache(self, file_path: Optional[str] = None) -> None:
        """Clear cache entries, optionally for a specific file."""
        if file_path:
            self.pixmap_cache.invalidate_file(file_path)
        else:
            self.pixmap_cache.clear()

    def cleanup(self) -> None:
        self.pixmap_cache.clear()
