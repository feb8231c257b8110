"""
PDF page source loading built on pdfminer.six.

Each page is interpreted once. The interpreter records the drawing operations
that matter for image placement (q, Q, cm and image paints) while pdfminer's
layout analysis groups glyphs into text lines. The result is a plain
PageSource per page that layout analysis can consume without touching the PDF.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from pdfminer.converter import PDFPageAggregator
from pdfminer.layout import LAParams, LTPage, LTTextContainer, LTTextLine
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.pdfparser import PDFParser
from pdfminer.psparser import PSException

from .graphics_state import GraphicsOp

logger = logging.getLogger(__name__)

# pdfminer is chatty at INFO/DEBUG about every object it resolves
logging.getLogger("pdfminer").setLevel(logging.WARNING)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class TextRun:
    """A positioned run of text in native PDF coordinates (origin bottom-left)."""
    text: str
    x: float
    y: float  # native y of the run's top edge
    width: float
    height: float


@dataclass
class PageSource:
    """Everything layout analysis needs to know about one page."""
    page_number: int
    height: float
    width: float = 0.0
    text_runs: List[TextRun] = field(default_factory=list)
    operations: List[GraphicsOp] = field(default_factory=list)


@dataclass
class LoadedDocument:
    """Page sources for a whole document plus the pages that failed to parse."""
    source_file: str
    pages: List[PageSource] = field(default_factory=list)
    failed_pages: List[int] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages) + len(self.failed_pages)


# ============================================================================
# Recording Device and Interpreter
# ============================================================================

class RecordingAggregator(PDFPageAggregator):
    """Layout aggregator that also keeps the page's image paint operations."""

    def __init__(self, rsrcmgr, pageno: int = 1, laparams: Optional[LAParams] = None):
        super().__init__(rsrcmgr, pageno=pageno, laparams=laparams)
        self.operations: List[GraphicsOp] = []

    def render_image(self, name, stream):
        self.operations.append(GraphicsOp.paint_image(str(name)))
        super().render_image(name, stream)


class RecordingInterpreter(PDFPageInterpreter):
    """Page interpreter that logs graphics-state operators to its device."""

    def _record(self, op: GraphicsOp):
        operations = getattr(self.device, "operations", None)
        if operations is not None:
            operations.append(op)

    def do_q(self):
        self._record(GraphicsOp.save())
        super().do_q()

    def do_Q(self):
        self._record(GraphicsOp.restore())
        super().do_Q()

    def do_cm(self, a1, b1, c1, d1, e1, f1):
        try:
            op = GraphicsOp.transform(a1, b1, c1, d1, e1, f1)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric cm operands: {(a1, b1, c1, d1, e1, f1)}")
        else:
            self._record(op)
        super().do_cm(a1, b1, c1, d1, e1, f1)


# ============================================================================
# Loading
# ============================================================================

def _collect_text_runs(layout: LTPage) -> List[TextRun]:
    """Flatten pdfminer text boxes into line-level text runs."""
    runs = []
    for item in layout:
        if isinstance(item, LTTextLine):
            lines = [item]
        elif isinstance(item, LTTextContainer):
            lines = [line for line in item if isinstance(line, LTTextLine)]
        else:
            continue

        for line in lines:
            text = line.get_text().rstrip("\n")
            if not text.strip():
                continue
            runs.append(TextRun(
                text=text,
                x=float(line.x0),
                y=float(line.y1),
                width=float(line.width),
                height=float(line.height),
            ))
    return runs


def read_page(
    page: PDFPage,
    page_number: int,
    rsrcmgr: PDFResourceManager,
    laparams: Optional[LAParams] = None
) -> PageSource:
    """Interpret one pdfminer page into a PageSource."""
    device = RecordingAggregator(rsrcmgr, pageno=page_number, laparams=laparams)
    interpreter = RecordingInterpreter(rsrcmgr, device)
    interpreter.process_page(page)
    layout = device.get_result()

    return PageSource(
        page_number=page_number,
        height=float(layout.height),
        width=float(layout.width),
        text_runs=_collect_text_runs(layout),
        operations=list(device.operations),
    )


def load_page_sources(
    pdf_path: Union[str, Path],
    laparams: Optional[LAParams] = None,
    progress=None
) -> LoadedDocument:
    """
    Read every page of a PDF into PageSource records.

    Args:
        pdf_path: Path to the PDF file
        laparams: pdfminer layout parameters (defaults used if None)
        progress: Optional ProcessingProgress receiving per-page errors

    Returns:
        LoadedDocument with pages in document order

    Raises:
        FileNotFoundError: If the PDF does not exist
        RuntimeError: If the file cannot be opened as a PDF
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.is_file():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    if laparams is None:
        laparams = LAParams()

    loaded = LoadedDocument(source_file=str(pdf_path))
    rsrcmgr = PDFResourceManager(caching=True)

    with open(pdf_path, "rb") as fp:
        try:
            document = PDFDocument(PDFParser(fp))
        except PSException as e:
            raise RuntimeError(f"Failed to parse PDF {pdf_path}: {e}") from e

        for page_number, page in enumerate(PDFPage.create_pages(document), 1):
            if progress is not None:
                progress.update("analysis", page_number)
            try:
                loaded.pages.append(read_page(page, page_number, rsrcmgr, laparams))
            except Exception as e:
                loaded.failed_pages.append(page_number)
                message = f"Skipping page {page_number} of {pdf_path.name}: {e}"
                if progress is not None:
                    progress.add_warning(message)
                else:
                    logger.warning(message)

    logger.info(
        f"Loaded {len(loaded.pages)} page(s) from {pdf_path.name}"
        + (f", skipped {len(loaded.failed_pages)}" if loaded.failed_pages else "")
    )
    return loaded
