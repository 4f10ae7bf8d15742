"""
Citation Binding Logic.

This module provides the pure (Qt-free) core of the report viewer:
- CitationRegistry: static mapping from citation id to a page location
- ViewerState: current page, page count, active citation and viewport width
- HighlightProjector: normalized highlight rectangle -> device pixel geometry
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union

logger = logging.getLogger(__name__)

CitationId = int

# Float slack for "rectangle lies within the page" checks
_AREA_TOLERANCE = 1e-9


def _parse_percent(value: Union[str, float, int]) -> float:
    """Convert '21.5%' (or a bare number in percent) to a 0..1 fraction."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("%"):
            text = text[:-1]
        return float(text) / 100.0
    return float(value) / 100.0


@dataclass(frozen=True)
class HighlightArea:
    """A rectangle in page-relative fractions of the rendered page size."""

    top: float
    left: float
    width: float
    height: float

    def __post_init__(self):
        for name in ("top", "left", "width", "height"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name}={value!r} is outside [0, 1]")
        if self.top + self.height > 1.0 + _AREA_TOLERANCE:
            raise ValueError("highlight area extends below the page")
        if self.left + self.width > 1.0 + _AREA_TOLERANCE:
            raise ValueError("highlight area extends past the page edge")

    @classmethod
    def from_percentages(cls, top, left, width, height) -> "HighlightArea":
        return cls(
            top=_parse_percent(top),
            left=_parse_percent(left),
            width=_parse_percent(width),
            height=_parse_percent(height),
        )


@dataclass(frozen=True)
class CitationTarget:
    page_number: int
    highlight_area: HighlightArea

    def __post_init__(self):
        if not isinstance(self.page_number, int) or self.page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {self.page_number!r}")


@dataclass(frozen=True)
class ConcreteRect:
    """Overlay geometry in device pixels, relative to the page's top-left."""

    top: float
    left: float
    width: float
    height: float


class CitationRegistry:
    """
    Read-only lookup table from citation id to CitationTarget.

    Built once at startup; lookups never raise, unknown ids yield None.
    """

    def __init__(self, targets: Mapping[CitationId, CitationTarget]):
        for citation_id, target in targets.items():
            if isinstance(citation_id, bool) or not isinstance(citation_id, int):
                raise ValueError(f"citation id must be an int, got {citation_id!r}")
            if citation_id < 1:
                raise ValueError(f"citation id must be positive, got {citation_id}")
            if not isinstance(target, CitationTarget):
                raise ValueError(f"citation {citation_id} has no valid target")
        self._targets = MappingProxyType(dict(targets))

    def lookup(self, citation_id) -> Optional[CitationTarget]:
        try:
            return self._targets.get(citation_id)
        except TypeError:
            # Unhashable ids cannot be registered, so they are simply unknown
            return None

    def ids(self) -> list[CitationId]:
        return sorted(self._targets)

    def ids_for_target(self, target: Optional[CitationTarget]) -> frozenset:
        """All ids whose target equals *target* (empty for None)."""
        if target is None:
            return frozenset()
        return frozenset(cid for cid, t in self._targets.items() if t == target)

    def __contains__(self, citation_id) -> bool:
        return self.lookup(citation_id) is not None

    def __iter__(self) -> Iterator[CitationId]:
        return iter(self.ids())

    def __len__(self) -> int:
        return len(self._targets)


# Citations for the A.P. Moller - Maersk Q2 2025 Interim Report
DEFAULT_CITATIONS = CitationRegistry(
    {
        1: CitationTarget(
            page_number=3,
            highlight_area=HighlightArea.from_percentages("21.5%", "10%", "80%", "5%"),
        ),
        2: CitationTarget(
            page_number=5,
            highlight_area=HighlightArea.from_percentages("25%", "10%", "80%", "5%"),
        ),
        3: CitationTarget(
            page_number=15,
            # "Gain on sale of non-current assets" row
            highlight_area=HighlightArea.from_percentages("29.8%", "8%", "84%", "2.2%"),
        ),
    }
)


class ViewerState:
    """
    Mutable state of a single viewer session.

    Visibility of the highlight is derived on every read from
    active_citation and current_page; it is never stored.
    """

    def __init__(self):
        self.initialize()

    def initialize(self) -> None:
        self.current_page: int = 1
        self.total_pages: Optional[int] = None
        self.active_citation: Optional[CitationTarget] = None
        self.viewport_width: Optional[float] = None

    def _clamp(self, page: int) -> int:
        upper = self.total_pages if self.total_pages is not None else math.inf
        return int(max(1, min(upper, page)))

    def on_document_loaded(self, page_count: int) -> None:
        if page_count < 1:
            raise ValueError(f"page_count must be >= 1, got {page_count}")
        if self.total_pages == page_count:
            return
        if self.total_pages is not None:
            logger.warning(
                "Document page count changed from %d to %d after load",
                self.total_pages,
                page_count,
            )
        self.total_pages = page_count
        self.current_page = self._clamp(self.current_page)

    def go_to_page(self, page: int) -> int:
        self.current_page = self._clamp(page)
        return self.current_page

    def activate_citation(self, target: CitationTarget) -> None:
        page = self._clamp(target.page_number)
        self.active_citation, self.current_page = target, page

    def clear_citation(self) -> None:
        self.active_citation = None

    def set_viewport_width(self, width: float) -> None:
        if width < 0:
            raise ValueError(f"viewport width must be >= 0, got {width}")
        self.viewport_width = width

    @property
    def highlight_visible(self) -> bool:
        return (
            self.active_citation is not None
            and self.active_citation.page_number == self.current_page
        )

    @property
    def can_go_prev(self) -> bool:
        return self.current_page > 1

    @property
    def can_go_next(self) -> bool:
        return self.total_pages is not None and self.current_page < self.total_pages

    def snapshot(self) -> tuple:
        return (
            self.current_page,
            self.total_pages,
            self.active_citation,
            self.viewport_width,
        )


def project_highlight(
    target: CitationTarget,
    rendered_width: Optional[float],
    rendered_height: Optional[float],
) -> Optional[ConcreteRect]:
    """
    Scale the target's normalized area onto a rendered page.

    Returns None while the page has not been measured, so callers suppress
    the overlay instead of drawing a degenerate rectangle.
    """
    if rendered_width is None or rendered_height is None:
        return None
    if rendered_width <= 0 or rendered_height <= 0:
        return None
    area = target.highlight_area
    return ConcreteRect(
        top=area.top * rendered_height,
        left=area.left * rendered_width,
        width=area.width * rendered_width,
        height=area.height * rendered_height,
    )


class HighlightProjector:
    """Stateless projector; see project_highlight."""

    def project(
        self,
        target: CitationTarget,
        rendered_width: Optional[float],
        rendered_height: Optional[float],
    ) -> Optional[ConcreteRect]:
        return project_highlight(target, rendered_width, rendered_height)
