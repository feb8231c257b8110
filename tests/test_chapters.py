"""
Tests for chapter segmentation.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


SAMPLE_STREAM = (
    "A Short Book\n"
    "Copyright notice and other front matter.\n"
    "\n"
    "Chapter 1\n"
    "The Beginning\n"
    "It was a dark night.\n"
    "\n\n[IMAGE_PLACEHOLDER_1]\n\n"
    "More text.\n"
    "Chapter 2\n"
    "The   Middle\n"
    "Things happened.\n"
)


class TestChapterSegmenter:
    """Test heading detection and splitting."""

    def test_partition_round_trip(self):
        """Concatenated chapter contents equal the input stream."""
        from book_recon.utils.chapters import ChapterSegmenter

        chapters = ChapterSegmenter().split(SAMPLE_STREAM)

        assert "".join(c.content for c in chapters) == SAMPLE_STREAM
        for before, after in zip(chapters, chapters[1:]):
            assert before.end == after.start

    def test_front_matter(self):
        """Text before the first heading becomes the front-matter chapter."""
        from book_recon.utils.chapters import ChapterSegmenter

        chapters = ChapterSegmenter().split(SAMPLE_STREAM)

        assert chapters[0].title == "Introduction / Front Matter"
        assert chapters[0].is_front_matter is True
        assert chapters[0].content.startswith("A Short Book")
        assert "Chapter 1" not in chapters[0].content

    def test_titles(self):
        """Titles combine the heading prefix with the next line, whitespace collapsed."""
        from book_recon.utils.chapters import ChapterSegmenter

        chapters = ChapterSegmenter().split(SAMPLE_STREAM)

        assert [c.title for c in chapters[1:]] == [
            "Chapter 1: The Beginning",
            "Chapter 2: The Middle",
        ]
        assert "[IMAGE_PLACEHOLDER_1]" in chapters[1].content
        assert chapters[1].content.lstrip().startswith("Chapter 1")

    def test_no_front_matter_when_heading_first(self):
        """A stream opening with a heading has no front-matter chapter."""
        from book_recon.utils.chapters import ChapterSegmenter

        text = "Part 1\nOpening\nBody text.\n"
        chapters = ChapterSegmenter().split(text)

        assert len(chapters) == 1
        assert chapters[0].title == "Part 1: Opening"
        assert chapters[0].content == text

    def test_no_headings_fallback(self):
        """Without headings the whole stream is one chapter."""
        from book_recon.utils.chapters import ChapterSegmenter

        text = "Just some prose without any structure."
        chapters = ChapterSegmenter().split(text)

        assert len(chapters) == 1
        assert chapters[0].title == "Full Document"
        assert chapters[0].content == text

    def test_empty_stream(self):
        """An empty stream yields no chapters."""
        from book_recon.utils.chapters import ChapterSegmenter

        assert ChapterSegmenter().split("") == []

    def test_case_insensitive_by_default(self):
        """Upper-case headings match unless case sensitivity is requested."""
        from book_recon.utils.chapters import ChapterSegmenter

        text = "CHAPTER 3\nLoud Title\nbody\n"

        assert ChapterSegmenter().split(text)[0].title == "CHAPTER 3: Loud Title"
        strict = ChapterSegmenter(ignore_case=False).split(text)
        assert strict[0].title == "Full Document"

    @pytest.mark.parametrize("heading", ["7", "12"])
    def test_bare_number_heading(self, heading):
        """A bare one or two digit line followed by a line opens a chapter."""
        from book_recon.utils.chapters import ChapterSegmenter

        chapters = ChapterSegmenter().split(f"{heading}\nSomething\nrest\n")

        assert chapters[0].title == f"{heading}: Something"


class TestChapterReport:
    """Test the human-readable report."""

    def test_report_lists_chapters(self):
        """The report shows each chapter's title and size."""
        from book_recon.utils.chapters import ChapterSegmenter, format_report

        chapters = ChapterSegmenter().split(SAMPLE_STREAM)
        report = format_report(chapters, preview_chars=20)

        assert f"Found {len(chapters)} potential chapter(s)." in report
        assert "Title: Chapter 2: The Middle" in report

    def test_report_empty(self):
        from book_recon.utils.chapters import format_report

        assert "No chapters" in format_report([])

    def test_split_into_chapters_with_config(self):
        """The convenience wrapper honours a custom pattern."""
        from book_recon.config import SegmentationConfig
        from book_recon.utils.chapters import split_into_chapters

        config = SegmentationConfig(heading_pattern=r"^(Section\s+[A-Z])\n(.*?)\n")
        chapters = split_into_chapters("Section A\nAlpha\ntext\n", config)

        assert chapters[0].title == "Section A: Alpha"


class TestHeadingPatternValidation:
    """Test rejection of unusable heading patterns."""

    def test_pattern_without_group(self):
        """A pattern with no capture group is rejected up front."""
        from book_recon.utils.chapters import ChapterSegmenter

        with pytest.raises(ValueError, match="capture group"):
            ChapterSegmenter(heading_pattern=r"^Chapter \d+$")

    def test_invalid_regex(self):
        from book_recon.utils.chapters import ChapterSegmenter

        with pytest.raises(ValueError, match="Invalid heading pattern"):
            ChapterSegmenter(heading_pattern=r"^(Chapter \d+")

    def test_single_group_pattern(self):
        """A one-group pattern titles chapters by the prefix alone."""
        from book_recon.utils.chapters import ChapterSegmenter

        chapters = ChapterSegmenter(heading_pattern=r"^(Chapter \d+)$").split(
            "intro\nChapter 1\nbody\n"
        )

        assert [c.title for c in chapters] == ["Introduction / Front Matter", "Chapter 1"]
