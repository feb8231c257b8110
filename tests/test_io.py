"""
Tests for I/O utilities.
"""

import json
import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestJson:
    """Test JSON helpers."""

    def test_save_and_load_json(self, tmp_path):
        """numpy values and paths are serialized."""
        from book_recon.utils.io import save_json, load_json

        path = save_json(
            {"count": np.int64(3), "scale": np.float32(0.5), "dir": Path("a/b")},
            tmp_path / "nested" / "data.json",
        )
        data = load_json(path)

        assert data == {"count": 3, "scale": 0.5, "dir": str(Path("a/b"))}

    def test_load_missing(self, tmp_path):
        from book_recon.utils.io import load_json

        with pytest.raises(FileNotFoundError):
            load_json(tmp_path / "missing.json")

    def test_elements_round_trip(self, tmp_path):
        """Content elements survive a save/load cycle."""
        from book_recon.utils.io import save_elements, load_elements
        from book_recon.utils.layout import ContentElement

        elements = [
            ContentElement.text(1, 72, 92, 100, 12, "Hello"),
            ContentElement.image(1, 10, 42, 100, 50),
        ]
        path = save_elements(elements, tmp_path / "analysis.json")

        assert load_elements(path) == elements

    def test_load_elements_rejects_object(self, tmp_path):
        from book_recon.utils.io import load_elements

        path = tmp_path / "bad.json"
        path.write_text('{"type": "text"}')

        with pytest.raises(ValueError):
            load_elements(path)


class TestSectionLog:
    """Test the JSON-lines section log."""

    def test_append_and_load(self, tmp_path):
        """Appends accumulate in order."""
        from book_recon.utils.io import append_sections, load_sections

        log_path = tmp_path / "book.log.jsonl"
        append_sections(log_path, [{"chapterTitle": "One", "content": "é"}])
        append_sections(log_path, [{"chapterTitle": "Two"}, {"chapterTitle": "Three"}])

        sections = load_sections(log_path)

        assert [s["chapterTitle"] for s in sections] == ["One", "Two", "Three"]
        assert sections[0]["content"] == "é"
        assert len(log_path.read_text(encoding="utf-8").splitlines()) == 3

    def test_missing_log(self, tmp_path):
        """A missing log raises unless missing_ok is set."""
        from book_recon.utils.io import load_sections

        with pytest.raises(FileNotFoundError):
            load_sections(tmp_path / "none.jsonl")
        assert load_sections(tmp_path / "none.jsonl", missing_ok=True) == []

    def test_malformed_line(self, tmp_path):
        """A bad line is reported with its line number."""
        from book_recon.utils.io import load_sections

        log_path = tmp_path / "bad.jsonl"
        log_path.write_text(json.dumps({"ok": 1}) + "\n{broken\n")

        with pytest.raises(ValueError, match=":2"):
            load_sections(log_path)

    def test_non_object_line(self, tmp_path):
        from book_recon.utils.io import load_sections

        log_path = tmp_path / "list.jsonl"
        log_path.write_text("[1, 2]\n")

        with pytest.raises(ValueError):
            load_sections(log_path)


class TestProgress:
    """Test progress tracking."""

    def test_problems_recorded(self):
        from book_recon.utils.io import ProcessingProgress

        progress = ProcessingProgress(total_pages=4)
        progress.complete_page()
        progress.add_warning("page 2 skipped")
        progress.add_error("broken")

        assert progress.percent_complete == 25.0
        assert progress.warnings == ["page 2 skipped"]
        assert progress.summary() == "1 warning(s), 1 error(s)"
