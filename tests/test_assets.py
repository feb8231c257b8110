"""
Tests for image asset handling.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestMaskCleanup:
    """Test soft-mask duplicate removal."""

    @pytest.fixture
    def extracted_dir(self, tmp_path):
        """Simulated pdfimages output: a colour image, its mask and a lone grayscale image."""
        import cv2

        directory = tmp_path / "images"
        directory.mkdir()

        colour = np.zeros((40, 60, 3), dtype=np.uint8)
        colour[:, :, 2] = 255
        cv2.imwrite(str(directory / "book-img-000.png"), colour)

        mask = np.full((40, 60), 255, dtype=np.uint8)
        cv2.imwrite(str(directory / "book-img-001.png"), mask)

        lone_gray = np.full((30, 30), 128, dtype=np.uint8)
        cv2.imwrite(str(directory / "book-img-002.png"), lone_gray)

        (directory / "readme.txt").write_text("not an image")
        return directory

    def test_removes_only_masks(self, extracted_dir):
        """Only grayscale files sharing a colour image's size are removed."""
        from book_recon.utils.assets import cleanup_image_masks

        removed = cleanup_image_masks(extracted_dir)

        assert removed == 1
        remaining = sorted(p.name for p in extracted_dir.iterdir())
        assert remaining == ["book-img-000.png", "book-img-002.png", "readme.txt"]

    def test_idempotent(self, extracted_dir):
        from book_recon.utils.assets import cleanup_image_masks

        cleanup_image_masks(extracted_dir)

        assert cleanup_image_masks(extracted_dir) == 0


class TestExtraction:
    """Test pdfimages invocation errors."""

    def test_missing_pdf(self, tmp_path):
        from book_recon.utils.assets import extract_images

        with pytest.raises(FileNotFoundError):
            extract_images(tmp_path / "missing.pdf", tmp_path / "out", "book")

    def test_missing_tool(self, tmp_path):
        """A missing pdfimages binary is reported as RuntimeError."""
        from book_recon.utils.assets import extract_images

        pdf = tmp_path / "book.pdf"
        pdf.write_bytes(b"%PDF-1.4\n")

        with pytest.raises(RuntimeError, match="poppler"):
            extract_images(pdf, tmp_path / "out", "book",
                           pdfimages_path="definitely-not-pdfimages")

    def test_failed_extraction_leaves_no_directory(self, tmp_path):
        """A failed run removes the output directory so the next run retries."""
        from book_recon.utils.assets import extract_images

        pdf = tmp_path / "book.pdf"
        pdf.write_bytes(b"%PDF-1.4\n")
        images_dir = tmp_path / "book-images"

        with pytest.raises(RuntimeError):
            extract_images(pdf, images_dir, "book", pdfimages_path="definitely-not-pdfimages")

        assert not images_dir.exists()

    def test_pipeline_retries_assets_after_failure(self, tmp_path):
        """After a failed asset phase the next run attempts extraction again."""
        from book_recon.config import get_config
        from book_recon.utils.pipeline import BookEntry, BookPipeline

        books_dir = tmp_path / "books"
        books_dir.mkdir()
        (books_dir / "book.pdf").write_bytes(b"%PDF-1.4\n")
        config = get_config()
        config.assets.pdfimages_path = "definitely-not-pdfimages"
        pipeline = BookPipeline(books_dir, tmp_path / "lib", tmp_path / "public", config=config)

        for _ in range(2):
            with pytest.raises(RuntimeError, match="poppler"):
                pipeline.process_book(BookEntry("book.pdf", "Book"))

        assert not (tmp_path / "public" / "book-images").exists()
