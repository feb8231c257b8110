"""
Chapter segmentation by heading heuristics.

The heading pattern is a heuristic, not a grammar: a bare one or two digit
line (a page number, a list index) followed by any line also matches and will
open a chapter.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..config import (
    DEFAULT_HEADING_PATTERN,
    FALLBACK_CHAPTER_TITLE,
    FRONT_MATTER_TITLE,
)

logger = logging.getLogger(__name__)


@dataclass
class Chapter:
    """A titled slice of the text stream."""
    title: str
    content: str
    start: int = 0
    end: int = 0
    is_front_matter: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "start": self.start,
            "end": self.end,
            "is_front_matter": self.is_front_matter,
        }


@dataclass
class Heading:
    title: str
    start: int


def _collapse(text: str) -> str:
    return " ".join(text.split())


class ChapterSegmenter:
    """
    Splits a linear text stream into chapters.

    Each chapter's content runs from its heading's match start (the heading
    line is kept) to the next heading's match start, so concatenating every
    chapter's content in order gives back the input.
    """

    def __init__(
        self,
        heading_pattern: Union[str, "re.Pattern"] = DEFAULT_HEADING_PATTERN,
        ignore_case: bool = True,
        front_matter_title: str = FRONT_MATTER_TITLE,
        fallback_title: str = FALLBACK_CHAPTER_TITLE
    ):
        if isinstance(heading_pattern, str):
            flags = re.MULTILINE | (re.IGNORECASE if ignore_case else 0)
            try:
                heading_pattern = re.compile(heading_pattern, flags)
            except re.error as e:
                raise ValueError(f"Invalid heading pattern {heading_pattern!r}: {e}") from e
        if heading_pattern.groups < 1:
            raise ValueError(
                f"Heading pattern {heading_pattern.pattern!r} needs a capture group "
                f"for the heading prefix"
            )
        self.heading_pattern = heading_pattern
        self.front_matter_title = front_matter_title
        self.fallback_title = fallback_title

    @classmethod
    def from_config(cls, config) -> 'ChapterSegmenter':
        """Build a segmenter from a SegmentationConfig."""
        return cls(
            heading_pattern=config.heading_pattern,
            ignore_case=config.ignore_case,
            front_matter_title=config.front_matter_title,
            fallback_title=config.fallback_title,
        )

    def find_headings(self, text: str) -> List[Heading]:
        """Collect every heading match with its start offset and title."""
        headings = []
        for match in self.heading_pattern.finditer(text):
            prefix = match.group(1) or ""
            following = (match.group(2) if match.re.groups >= 2 else None) or ""
            title = _collapse(f"{prefix}: {following}") if following.strip() else _collapse(prefix)
            headings.append(Heading(title=title, start=match.start()))
        return headings

    def split(self, text: str) -> List[Chapter]:
        """
        Split text into chapters.

        Returns:
            Chapters in stream order. An empty stream gives no chapters; a
            stream with no heading gives one chapter with the fallback title.
        """
        if not text:
            return []

        headings = self.find_headings(text)
        if not headings:
            logger.info(
                f"No chapter headings detected; treating the stream as "
                f"one chapter ({self.fallback_title!r})"
            )
            return [Chapter(title=self.fallback_title, content=text,
                            start=0, end=len(text))]

        chapters = []
        first_start = headings[0].start
        if first_start > 0:
            chapters.append(Chapter(
                title=self.front_matter_title,
                content=text[:first_start],
                start=0,
                end=first_start,
                is_front_matter=True,
            ))

        for i, heading in enumerate(headings):
            end = headings[i + 1].start if i + 1 < len(headings) else len(text)
            chapters.append(Chapter(
                title=heading.title,
                content=text[heading.start:end],
                start=heading.start,
                end=end,
            ))

        logger.info(f"Detected {len(headings)} chapter heading(s)")
        return chapters


def format_report(chapters: List[Chapter], preview_chars: int = 250) -> str:
    """Human-readable chapter breakdown used when tuning the heading pattern."""
    if not chapters:
        return "No chapters were identified based on the current rules."

    lines = [f"Found {len(chapters)} potential chapter(s).", ""]
    for index, chapter in enumerate(chapters, 1):
        preview = chapter.content.strip()[:preview_chars].replace("\n", " ")
        lines.append(f"--- Chapter {index} ---")
        lines.append(f"  Title: {chapter.title}")
        lines.append(f"  Size: {len(chapter.content)} characters")
        lines.append(f"  Preview: \"{preview}...\"")
        lines.append("")
    return "\n".join(lines)


def split_into_chapters(text: str, config: Optional[Any] = None) -> List[Chapter]:
    """Convenience wrapper using a SegmentationConfig (or defaults)."""
    segmenter = ChapterSegmenter.from_config(config) if config is not None else ChapterSegmenter()
    return segmenter.split(text)
