"""
Layout analysis module for book reconstruction.

Provides:
- ContentElement, the positioned text run / image placement record
- Per-page analysis (coordinate flip, image geometry from the graphics state)
- Whole-document analysis with optional per-page fan-out

Coordinates in ContentElement are page points with the origin at the top-left
of the page. PDF places the origin bottom-left, so every y is flipped against
the page height here.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pdfminer.layout import LAParams

from .graphics_state import GraphicsStateTracker, OpKind
from .pdf_source import PageSource, load_page_sources

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes and Enums
# ============================================================================

class ElementType(Enum):
    """Kinds of extracted content."""
    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class ContentElement:
    """One extracted text run or image placement."""
    element_type: ElementType
    page: int
    x: float
    y: float
    width: float
    height: float
    content: Optional[str] = None

    @classmethod
    def text(cls, page: int, x: float, y: float, width: float, height: float,
             content: str) -> 'ContentElement':
        return cls(ElementType.TEXT, page, float(x), float(y),
                   abs(float(width)), abs(float(height)), content)

    @classmethod
    def image(cls, page: int, x: float, y: float, width: float,
              height: float) -> 'ContentElement':
        return cls(ElementType.IMAGE, page, float(x), float(y),
                   abs(float(width)), abs(float(height)))

    @property
    def is_text(self) -> bool:
        return self.element_type is ElementType.TEXT

    @property
    def is_image(self) -> bool:
        return self.element_type is ElementType.IMAGE

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "type": self.element_type.value,
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        if self.is_text:
            result["content"] = self.content or ""
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContentElement':
        element_type = ElementType(data["type"])
        if element_type is ElementType.TEXT:
            return cls.text(data["page"], data["x"], data["y"],
                            data["width"], data["height"], data.get("content", ""))
        return cls.image(data["page"], data["x"], data["y"], data["width"], data["height"])


@dataclass
class PageLayout:
    """Elements and diagnostics for one analyzed page."""
    page_number: int
    elements: List[ContentElement] = field(default_factory=list)
    skipped_images: int = 0
    restore_underflows: int = 0


@dataclass
class AnalysisResult:
    """Result of analyzing a whole document."""
    elements: List[ContentElement]
    page_count: int = 0
    failed_pages: List[int] = field(default_factory=list)
    skipped_images: int = 0
    restore_underflows: int = 0
    source_file: str = ""

    @property
    def text_count(self) -> int:
        return sum(1 for e in self.elements if e.is_text)

    @property
    def image_count(self) -> int:
        return sum(1 for e in self.elements if e.is_image)


# ============================================================================
# Page Analysis
# ============================================================================

def analyze_page_layout(
    source: PageSource,
    min_image_size: float = 0.0,
    compose_transforms: bool = False
) -> PageLayout:
    """
    Turn one page source into content elements.

    Text runs come first in source order, then image placements in the order
    their paint operations occur. The graphics state is local to this call.
    """
    page_height = source.height
    layout = PageLayout(page_number=source.page_number)

    for run in source.text_runs:
        layout.elements.append(ContentElement.text(
            page=source.page_number,
            x=run.x,
            y=page_height - run.y,
            width=run.width,
            height=run.height,
            content=run.text,
        ))

    tracker = GraphicsStateTracker(compose=compose_transforms)
    for op in source.operations:
        if op.kind is not OpKind.PAINT_IMAGE:
            tracker.apply(op)
            continue

        w, _, _, h, x, y = tracker.current_transform
        if abs(w) < min_image_size or abs(h) < min_image_size:
            layout.skipped_images += 1
            continue

        layout.elements.append(ContentElement.image(
            page=source.page_number,
            x=x,
            y=page_height - y - h,
            width=w,
            height=h,
        ))

    layout.restore_underflows = tracker.restore_underflows
    if tracker.restore_underflows:
        logger.debug(
            f"Page {source.page_number}: {tracker.restore_underflows} restore(s) "
            f"on an empty graphics stack fell back to identity"
        )
    return layout


def analyze_page(
    source: PageSource,
    min_image_size: float = 0.0,
    compose_transforms: bool = False
) -> List[ContentElement]:
    """Pure page -> elements function."""
    return analyze_page_layout(source, min_image_size, compose_transforms).elements


# ============================================================================
# Layout Analyzer
# ============================================================================

class LayoutAnalyzer:
    """
    Extracts every positioned text run and image placement from a PDF.

    Pages are independent units: each is analyzed from scratch, so they may be
    fanned out to worker threads. Results are always reassembled in page order.
    """

    def __init__(
        self,
        min_image_size: float = 0.0,
        compose_transforms: bool = False,
        max_workers: int = 1,
        laparams: Optional[LAParams] = None
    ):
        self.min_image_size = min_image_size
        self.compose_transforms = compose_transforms
        self.max_workers = max(1, max_workers)
        self.laparams = laparams

    @classmethod
    def from_config(cls, config) -> 'LayoutAnalyzer':
        """Build an analyzer from an AnalysisConfig."""
        return cls(
            min_image_size=config.min_image_size,
            compose_transforms=config.compose_transforms,
            max_workers=config.max_workers,
            laparams=LAParams(
                line_margin=config.line_margin,
                char_margin=config.char_margin,
                word_margin=config.word_margin,
            ),
        )

    def _analyze_one(self, source: PageSource) -> PageLayout:
        return analyze_page_layout(source, self.min_image_size, self.compose_transforms)

    def analyze_pages(self, sources: List[PageSource], progress=None) -> AnalysisResult:
        """Analyze page sources, preserving page order in the result."""
        if self.max_workers > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                layouts = list(executor.map(self._analyze_one, sources))
        else:
            layouts = [self._analyze_one(source) for source in sources]

        elements = []
        skipped = 0
        underflows = 0
        for page_layout in layouts:
            elements.extend(page_layout.elements)
            skipped += page_layout.skipped_images
            underflows += page_layout.restore_underflows
            if progress is not None:
                progress.complete_page()

        if skipped:
            logger.info(f"Dropped {skipped} image(s) smaller than {self.min_image_size}pt")
        if underflows:
            logger.info(
                f"{underflows} graphics restore(s) on an empty stack fell back to the "
                f"identity transform"
            )

        return AnalysisResult(
            elements=elements,
            page_count=len(sources),
            skipped_images=skipped,
            restore_underflows=underflows,
        )

    def analyze(
        self,
        pdf_path: Union[str, Path],
        progress=None
    ) -> AnalysisResult:
        """
        Analyze a PDF file.

        Args:
            pdf_path: Path to the PDF
            progress: Optional ProcessingProgress for per-page problems

        Returns:
            AnalysisResult with all elements in page order

        Raises:
            FileNotFoundError: If the PDF does not exist
            RuntimeError: If the PDF cannot be parsed at all
        """
        loaded = load_page_sources(pdf_path, laparams=self.laparams, progress=progress)
        if progress is not None:
            progress.total_pages = loaded.page_count
            progress.update("layout analysis")
        result = self.analyze_pages(loaded.pages, progress=progress)
        result.page_count = loaded.page_count
        result.failed_pages = list(loaded.failed_pages)
        result.source_file = loaded.source_file

        if progress is not None:
            logger.info(
                f"Analyzed {progress.processed_pages}/{progress.total_pages} page(s) "
                f"({progress.percent_complete:.0f}%)"
            )

        logger.info(
            f"Layout analysis found {result.text_count} text run(s) and "
            f"{result.image_count} image placement(s) on {result.page_count} page(s)"
        )
        return result
