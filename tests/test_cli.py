"""
Tests for configuration and the command-line interface.
"""

import json
import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestConfig:
    """Test configuration defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        from book_recon.config import get_config

        for name in ("BOOK_RECON_PARAGRAPH_THRESHOLD", "BOOK_RECON_LINE_TOLERANCE",
                     "BOOK_RECON_MIN_IMAGE_SIZE", "BOOK_RECON_WORKERS", "BOOK_RECON_DEBUG"):
            monkeypatch.delenv(name, raising=False)

        config = get_config()

        assert config.reconstruction.paragraph_threshold == 10.0
        assert config.reconstruction.same_line_tolerance == 5.0
        assert config.analysis.min_image_size == 0.0
        assert config.analysis.max_workers == 1
        assert config.debug_mode is False

    def test_environment_overrides(self, monkeypatch):
        from book_recon.config import get_config

        monkeypatch.setenv("BOOK_RECON_PARAGRAPH_THRESHOLD", "14")
        monkeypatch.setenv("BOOK_RECON_MIN_IMAGE_SIZE", "50")
        monkeypatch.setenv("BOOK_RECON_WORKERS", "4")
        monkeypatch.setenv("BOOK_RECON_DEBUG", "true")

        config = get_config()

        assert config.reconstruction.paragraph_threshold == 14.0
        assert config.analysis.min_image_size == 50.0
        assert config.analysis.max_workers == 4
        assert config.debug_mode is True

    def test_bad_value_ignored(self, monkeypatch):
        from book_recon.config import get_config

        monkeypatch.setenv("BOOK_RECON_LINE_TOLERANCE", "wide")

        assert get_config().reconstruction.same_line_tolerance == 5.0


class TestCli:
    """Test subcommands end to end on small artifacts."""

    def test_reconstruct_and_segment(self, tmp_path):
        """reconstruct writes the stream; segment writes the chapters."""
        from book_recon.cli import main
        from book_recon.utils.io import save_elements
        from book_recon.utils.layout import ContentElement

        analysis = tmp_path / "analysis.json"
        save_elements([
            ContentElement.text(1, 72, 100, 60, 12, "Chapter 2"),
            ContentElement.text(1, 72, 150, 60, 12, "Later On"),
            ContentElement.image(1, 72, 200, 100, 50),
        ], analysis)
        text_path = tmp_path / "book.txt"
        chapters_path = tmp_path / "chapters.json"

        with pytest.raises(SystemExit) as exc:
            main(["--quiet", "reconstruct", "-i", str(analysis), "-o", str(text_path)])
        assert exc.value.code == 0
        assert text_path.read_text(encoding="utf-8") == (
            "Chapter 2\n\nLater On\n\n\n\n[IMAGE_PLACEHOLDER_1]\n\n"
        )

        with pytest.raises(SystemExit) as exc:
            main(["--quiet", "segment", "-i", str(text_path), "-o", str(chapters_path)])
        assert exc.value.code == 0
        chapters = json.loads(chapters_path.read_text(encoding="utf-8"))
        assert [c["title"] for c in chapters] == ["Chapter 2: Later On"]

    def test_missing_input_exit_code(self, tmp_path):
        """A fatal error exits with status 1."""
        from book_recon.cli import main

        with pytest.raises(SystemExit) as exc:
            main(["--quiet", "segment", "-i", str(tmp_path / "missing.txt")])
        assert exc.value.code == 1

    def test_debug_reraises(self, tmp_path):
        from book_recon.cli import main

        with pytest.raises(FileNotFoundError):
            main(["--quiet", "--debug", "segment", "-i", str(tmp_path / "missing.txt")])

    def test_finalize_command(self, tmp_path):
        from book_recon.cli import main
        from book_recon.utils.io import append_sections, load_json

        images = tmp_path / "book-images"
        images.mkdir()
        (images / "p1.png").write_bytes(b"\x89PNG")
        log_path = tmp_path / "book.log.jsonl"
        append_sections(log_path, [{"chapterTitle": "A", "content": "[IMAGE_PLACEHOLDER_1]"}])
        output = tmp_path / "final.json"

        with pytest.raises(SystemExit) as exc:
            main(["--quiet", "finalize", "--log", str(log_path), "--images", str(images),
                  "-o", str(output), "--book-title", "Book", "--year", "2020"])

        assert exc.value.code == 0
        data = load_json(output)
        assert data[0]["content"] == '<img src="/book-images/p1.png" alt="Book - Image 1">'
        assert data[0]["year"] == "2020"
        assert "license" not in data[0]

    def test_bad_heading_pattern_exit_code(self, tmp_path):
        """A heading pattern without a capture group is reported, not a traceback."""
        from book_recon.cli import main

        text_path = tmp_path / "book.txt"
        text_path.write_text("intro\nChapter 1\nbody\n", encoding="utf-8")

        with pytest.raises(SystemExit) as exc:
            main(["--quiet", "segment", "-i", str(text_path), "--pattern", r"^Chapter \d+$"])
        assert exc.value.code == 1
