"""
Image asset extraction for book reconstruction.

Provides:
- Embedded image extraction via poppler's pdfimages
- Removal of soft-mask duplicates left next to colour images
- First-page cover rendering via pdf2image
"""

import logging
import shutil
import subprocess
from collections import defaultdict
from pathlib import Path
from typing import Optional, Union

import cv2

logger = logging.getLogger(__name__)


# ============================================================================
# Mask Cleanup
# ============================================================================

def _channel_count(image) -> int:
    return 1 if image.ndim == 2 else image.shape[2]


def cleanup_image_masks(directory: Union[str, Path]) -> int:
    """
    Delete single-channel images that duplicate a colour image's dimensions.

    pdfimages writes an image's soft mask as a separate grayscale file of the
    same size. Within each WxH group that contains a colour image, every
    single-channel file is removed.

    Returns:
        Number of files removed
    """
    directory = Path(directory)
    groups = defaultdict(list)

    for path in sorted(directory.iterdir()):
        if not path.is_file():
            continue
        image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if image is None:
            continue  # not an image
        h, w = image.shape[:2]
        groups[(w, h)].append((path, _channel_count(image)))

    removed = 0
    for (w, h), images in groups.items():
        if len(images) < 2 or not any(channels >= 3 for _, channels in images):
            continue
        for path, channels in images:
            if channels == 1:
                path.unlink()
                removed += 1
                logger.debug(f"Removed mask {path.name} ({w}x{h})")

    if removed:
        logger.info(f"Removed {removed} image mask(s) from {directory}")
    return removed


# ============================================================================
# Extraction
# ============================================================================

def extract_images(
    pdf_path: Union[str, Path],
    images_dir: Union[str, Path],
    prefix: str,
    pdfimages_path: str = "pdfimages",
    cleanup_masks: bool = True
) -> Path:
    """
    Extract every embedded image of a PDF into a fresh directory.

    Images are written as <images_dir>/<prefix>-img-NNN.<ext>; pdfimages
    numbers them in page order.

    Raises:
        FileNotFoundError: If the PDF doesn't exist
        RuntimeError: If pdfimages is missing or fails
    """
    pdf_path = Path(pdf_path)
    images_dir = Path(images_dir)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    shutil.rmtree(images_dir, ignore_errors=True)
    images_dir.mkdir(parents=True, exist_ok=True)

    output_prefix = images_dir / f"{prefix}-img"
    command = [pdfimages_path, "-j", "-png", str(pdf_path), str(output_prefix)]
    logger.info(f"Extracting content images: {' '.join(command)}")

    try:
        subprocess.run(command, check=True, capture_output=True, text=True)
    except FileNotFoundError as e:
        # no partial directory, so the next run retries extraction
        shutil.rmtree(images_dir, ignore_errors=True)
        raise RuntimeError(
            "pdfimages is not installed. Install poppler:\n"
            "  macOS: brew install poppler\n"
            "  Linux: sudo apt-get install poppler-utils"
        ) from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        if "error" in stderr.lower():
            shutil.rmtree(images_dir, ignore_errors=True)
            raise RuntimeError(f"pdfimages failed on {pdf_path}: {stderr}") from e
        logger.warning(f"pdfimages exited with status {e.returncode}: {stderr}")

    if cleanup_masks:
        cleanup_image_masks(images_dir)

    count = sum(1 for f in images_dir.iterdir() if f.is_file())
    logger.info(f"Extracted {count} image(s) to {images_dir}")
    return images_dir


def generate_cover(
    pdf_path: Union[str, Path],
    covers_dir: Union[str, Path],
    identifier: str,
    dpi: int = 150
) -> Optional[Path]:
    """
    Render the first page to <covers_dir>/<identifier>.png.

    Rendering problems are not fatal: they are logged and None is returned.
    """
    from pdf2image import convert_from_path
    from pdf2image.exceptions import (
        PDFInfoNotInstalledError,
        PDFPageCountError,
        PDFSyntaxError,
    )

    covers_dir = Path(covers_dir)
    covers_dir.mkdir(parents=True, exist_ok=True)
    output_path = covers_dir / f"{identifier}.png"

    try:
        pages = convert_from_path(str(pdf_path), dpi=dpi, first_page=1, last_page=1, fmt="png")
    except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError, OSError) as e:
        logger.warning(
            f"Could not generate cover image for {identifier!r}: {e}. "
            f"Continuing without a cover; make sure poppler (pdftoppm) is on PATH."
        )
        return None

    if not pages:
        logger.warning(f"No pages rendered for cover of {identifier!r}")
        return None

    pages[0].save(output_path)
    logger.info(f"Cover image saved to {output_path}")
    return output_path
