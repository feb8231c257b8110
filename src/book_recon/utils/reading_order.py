"""
Reading-order reconstruction.

Sorts content elements into single-column reading order (page, then line
band top to bottom, then left to right) and linearizes them into one text
stream carrying page markers, paragraph breaks and numbered image
placeholders.

Known limitation: line banding only looks at vertical position, so true
multi-column pages are read straight across both columns.
"""

import logging
from dataclasses import dataclass
from typing import List

from ..config import PAGE_BREAK_TEMPLATE, PLACEHOLDER_TEMPLATE
from .layout import ContentElement

logger = logging.getLogger(__name__)


@dataclass
class ReconstructionResult:
    """The linear text stream plus counts for diagnostics."""
    text: str
    placeholder_count: int = 0
    element_count: int = 0
    page_count: int = 0


def _total_key(element: ContentElement):
    return (
        element.page,
        element.y,
        element.x,
        element.element_type.value,
        element.content or "",
        element.width,
        element.height,
    )


def _band_key(element: ContentElement):
    return (
        element.x,
        element.y,
        element.element_type.value,
        element.content or "",
        element.width,
        element.height,
    )


def sort_elements(
    elements: List[ContentElement],
    same_line_tolerance: float = 5.0
) -> List[ContentElement]:
    """
    Put elements into reading order.

    Within a page, elements are grouped into line bands: a band starts at its
    top-most element and takes every following element whose y is within
    `same_line_tolerance` of it. Bands go top to bottom, elements within a
    band left to right. The result does not depend on input order.
    """
    ordered = sorted(elements, key=_total_key)

    result: List[ContentElement] = []
    band: List[ContentElement] = []
    for element in ordered:
        if band and (
            element.page != band[0].page
            or element.y - band[0].y > same_line_tolerance
        ):
            result.extend(sorted(band, key=_band_key))
            band = []
        band.append(element)
    result.extend(sorted(band, key=_band_key))
    return result


class ReadingOrderReconstructor:
    """Linearizes sorted content elements into the annotated text stream."""

    def __init__(
        self,
        paragraph_threshold: float = 10.0,
        same_line_tolerance: float = 5.0
    ):
        self.paragraph_threshold = paragraph_threshold
        self.same_line_tolerance = same_line_tolerance

    @classmethod
    def from_config(cls, config) -> 'ReadingOrderReconstructor':
        """Build a reconstructor from a ReconstructionConfig."""
        return cls(
            paragraph_threshold=config.paragraph_threshold,
            same_line_tolerance=config.same_line_tolerance,
        )

    def reconstruct(self, elements: List[ContentElement]) -> ReconstructionResult:
        """
        Build the text stream.

        Args:
            elements: Content elements in any order

        Returns:
            ReconstructionResult with the stream and the placeholder count
        """
        ordered = sort_elements(elements, self.same_line_tolerance)

        parts: List[str] = []
        tail = ""  # last character emitted so far
        placeholder_count = 0
        previous = None

        for element in ordered:
            if previous is not None:
                if element.page > previous.page:
                    marker = PAGE_BREAK_TEMPLATE.format(page=element.page)
                    parts.append(marker)
                    tail = marker[-1]
                elif element.y - (previous.y + previous.height) > self.paragraph_threshold:
                    parts.append("\n\n")
                    tail = "\n"

            if element.is_text:
                content = (element.content or "").strip()
                if content:
                    # same-line words and wrapped lines join with one space
                    if tail and not tail.isspace():
                        parts.append(" ")
                    parts.append(content)
                    tail = content[-1]
            else:
                placeholder_count += 1
                token = PLACEHOLDER_TEMPLATE.format(number=placeholder_count)
                parts.append(f"\n\n{token}\n\n")
                tail = "\n"

            previous = element

        pages = {e.page for e in ordered}
        logger.info(
            f"Reconstructed {len(ordered)} element(s) across {len(pages)} page(s); "
            f"inserted {placeholder_count} image placeholder(s)"
        )
        return ReconstructionResult(
            text="".join(parts),
            placeholder_count=placeholder_count,
            element_count=len(ordered),
            page_count=len(pages),
        )
