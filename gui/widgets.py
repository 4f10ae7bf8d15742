import html
import logging
import re
from typing import NamedTuple, Optional

from PyQt6.QtWidgets import QLabel, QWidget, QFrame, QVBoxLayout
from PyQt6.QtGui import QPixmap
from PyQt6.QtCore import Qt, pyqtSignal

logger = logging.getLogger(__name__)

HIGHLIGHT_STYLE = """
    QFrame#highlightOverlay {
        background-color: rgba(255, 235, 59, 90);
        border: 2px solid rgba(255, 193, 7, 220);
        border-radius: 2px;
    }
"""

CITATION_LINK = re.compile(r"\[(\d+)\]")


class HighlightOverlay(QFrame):
    """Translucent box drawn over the cited region of the page."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("highlightOverlay")
        self.setStyleSheet(HIGHLIGHT_STYLE)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.hide()


class PDFPageLabel(QLabel):
    """A rendered page with an optional highlight overlay on top."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignLeft)
        self.page_number = None
        self.overlay = HighlightOverlay(self)

    def set_page(self, page_number: int, pixmap: QPixmap):
        self.page_number = page_number
        self.setPixmap(pixmap)
        self.setFixedSize(pixmap.width(), pixmap.height())

    def clear_page(self):
        self.page_number = None
        self.setPixmap(QPixmap())
        self.set_highlight(None)

    def set_highlight(self, rect):
        """Place the overlay at a ConcreteRect, or hide it for None."""
        if rect is None:
            self.overlay.hide()
            return
        self.overlay.setGeometry(
            int(round(rect.left)),
            int(round(rect.top)),
            max(1, int(round(rect.width))),
            max(1, int(round(rect.height))),
        )
        self.overlay.show()
        self.overlay.raise_()

    @property
    def highlight_visible(self) -> bool:
        return self.overlay.isVisible()


class Paragraph(NamedTuple):
    """One block of analysis text: optional bold lead line, then the body."""

    body: str
    lead: Optional[str] = None
    quote: bool = False  # body is quoted source text, shown in italics


# Analysis of the A.P. Moller - Maersk Q2 2025 Interim Report.
# Plain text only; [n] markers become clickable citations.
ANALYSIS_SECTIONS = [
    (
        "Analysis",
        [
            Paragraph(
                "No extraordinary or one-off items affecting EBITDA were reported "
                "in Maersk's Q2 2025 results."
            ),
            Paragraph(
                "The report explicitly notes that EBITDA improvements stemmed from "
                "operational performance, including volume growth, cost control, "
                "and margin improvement across Ocean, Logistics & Services, and "
                "Terminals segments [1][2]. Gains or losses from asset sales, which "
                "could qualify as extraordinary items, are shown separately under "
                "EBIT and not included in EBITDA."
            ),
            Paragraph(
                "The gain on sale of non-current assets was USD 25 m in Q2 2025, "
                "significantly lower than USD 208 m in Q2 2024, but these affect "
                "EBIT, not EBITDA [3]. Hence, Q2 2025 EBITDA reflects core "
                "operating activities without one-off extraordinary adjustments."
            ),
        ],
    ),
    (
        "Findings",
        [
            Paragraph(
                "EBITDA increase (USD 2.3 bn vs USD 2.1 bn prior year) attributed "
                "to operational improvements; no mention of extraordinary or "
                "one-off items. [1]",
                lead="Page 3 - Highlights Q2 2025",
            ),
            Paragraph(
                "EBITDA rise driven by higher revenue and cost control across all "
                "segments; no extraordinary gains or losses included. [2]",
                lead="Page 5 - Review Q2 2025",
            ),
            Paragraph(
                "Gain on sale of non-current assets USD 25 m (vs USD 208 m prior "
                "year) reported separately below EBITDA; therefore, not part of "
                "EBITDA. [3]",
                lead="Page 15 - Condensed Income Statement",
            ),
        ],
    ),
    (
        "Supporting Evidence",
        [
            Paragraph(
                "\"Maersk's results continued to improve year-on-year ... EBITDA "
                "of USD 2.3 bn (USD 2.1 bn) ... driven by volume and other revenue "
                "growth in Ocean, margin improvements in Logistics & Services and "
                "significant top line growth in Terminals.\"",
                lead="[1] A.P. Moller - Maersk Q2 2025 Interim Report (7 Aug 2025), Page 3",
                quote=True,
            ),
            Paragraph(
                "\"EBITDA increased to USD 2.3 bn (USD 2.1 bn) ... driven by "
                "higher revenue and cost management ... Ocean's EBITDA ... slightly "
                "increased by USD 36 m ... Logistics & Services contributed "
                "significantly with a USD 71 m increase ... Terminals' EBITDA "
                "increased by USD 50 m.\"",
                lead="[2] A.P. Moller - Maersk Q2 2025 Interim Report (7 Aug 2025), Page 5",
                quote=True,
            ),
            Paragraph(
                "\"Gain on sale of non-current assets, etc., net 25 (208) ... "
                "Profit before depreciation, amortisation and impairment losses, "
                "etc. (EBITDA) 2,298\"",
                lead="[3] A.P. Moller - Maersk Q2 2025 Interim Report (7 Aug 2025), Page 15",
                quote=True,
            ),
        ],
    ),
]


def render_citation_links(text: str, active_ids=frozenset()) -> str:
    """HTML-escape plain *text*, then turn [n] markers into cite:n anchors."""

    def link(match):
        citation_id = int(match.group(1))
        if citation_id in active_ids:
            style = (
                "color: #1e1e2e; background-color: #f9e2af; "
                "font-weight: bold; text-decoration: none;"
            )
        else:
            style = "color: #89b4fa; font-weight: bold; text-decoration: none;"
        return f'<a href="cite:{citation_id}" style="{style}">[{citation_id}]</a>'

    return CITATION_LINK.sub(link, html.escape(text, quote=False))


def paragraph_html(paragraph: Paragraph, active_ids=frozenset()) -> str:
    """Rich text for one Paragraph; markup is added only around escaped text."""
    body = render_citation_links(paragraph.body, active_ids)
    if paragraph.quote:
        body = f"<i>{body}</i>"
    if paragraph.lead is None:
        return body
    # Evidence leads start with their own [n] marker, which stays clickable
    lead = render_citation_links(paragraph.lead, active_ids)
    if paragraph.quote:
        return f"{lead}<br>{body}"
    return f"<b>{lead}</b><br>{body}"


def parse_citation_href(href: str):
    """'cite:3' -> 3; anything else -> None."""
    scheme, _, value = href.partition(":")
    if scheme != "cite":
        return None
    try:
        return int(value)
    except ValueError:
        return None


class AnalysisPanel(QWidget):
    """Right-hand column: analysis text with clickable citation markers."""

    citationClicked = pyqtSignal(int)

    def __init__(self, sections=None, parent=None):
        super().__init__(parent)
        self.sections = sections if sections is not None else ANALYSIS_SECTIONS
        self.active_ids = frozenset()
        self._paragraphs: list[tuple[QLabel, Paragraph]] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)

        for idx, (title, paragraphs) in enumerate(self.sections):
            if idx:
                divider = QFrame()
                divider.setFrameShape(QFrame.Shape.HLine)
                divider.setStyleSheet("color: #45475a;")
                layout.addWidget(divider)

            heading = QLabel(html.escape(title))
            heading.setStyleSheet("font-size: 18px; font-weight: bold; color: #b4befe;")
            layout.addWidget(heading)

            for paragraph in paragraphs:
                lbl = QLabel()
                lbl.setWordWrap(True)
                lbl.setTextFormat(Qt.TextFormat.RichText)
                lbl.setOpenExternalLinks(False)
                lbl.linkActivated.connect(self._on_link_activated)
                layout.addWidget(lbl)
                self._paragraphs.append((lbl, paragraph))

        layout.addStretch()
        self._render()

    def _render(self):
        for lbl, paragraph in self._paragraphs:
            lbl.setText(paragraph_html(paragraph, self.active_ids))

    def _on_link_activated(self, href: str):
        citation_id = parse_citation_href(href)
        if citation_id is None:
            logger.warning("Ignoring unrecognised link %r", href)
            return
        self.citationClicked.emit(citation_id)

    def set_active_ids(self, active_ids):
        active_ids = frozenset(active_ids)
        if active_ids == self.active_ids:
            return
        self.active_ids = active_ids
        self._render()
