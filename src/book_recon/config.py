"""
Configuration and constants for the book reconstruction pipeline.

This module provides:
- Processing parameters for each pipeline stage
- Stream marker formats shared by reconstruction and finalization
- Environment overrides for tuning without code changes
"""

import os
import re
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

logger = logging.getLogger("book_recon")


# ============================================================================
# Stream Markers
# ============================================================================

PAGE_BREAK_TEMPLATE = "\n\n--- PAGE {page} ---\n\n"
PLACEHOLDER_TEMPLATE = "[IMAGE_PLACEHOLDER_{number}]"
PLACEHOLDER_PATTERN = re.compile(r"\[IMAGE_PLACEHOLDER_(\d+)\]")

# Heading prefix on its own line, followed by the title line.
DEFAULT_HEADING_PATTERN = r"^\s*(Chapter\s+\d+|Part\s+\d+|\d{1,2})\s*\n(.*?)\n"

FRONT_MATTER_TITLE = "Introduction / Front Matter"
FALLBACK_CHAPTER_TITLE = "Full Document"


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class AnalysisConfig:
    """Layout analysis configuration."""
    # Images smaller than this (points, either side) are dropped. 0 keeps all.
    min_image_size: float = 0.0
    # False: a transform op replaces the current matrix. True: PDF cm semantics.
    compose_transforms: bool = False
    max_workers: int = 1
    # pdfminer LAParams used to group glyphs into text lines
    line_margin: float = 0.5
    char_margin: float = 2.0
    word_margin: float = 0.1


@dataclass
class ReconstructionConfig:
    """Reading-order reconstruction configuration."""
    paragraph_threshold: float = 10.0  # vertical gap in points
    same_line_tolerance: float = 5.0


@dataclass
class SegmentationConfig:
    """Chapter segmentation configuration."""
    heading_pattern: str = DEFAULT_HEADING_PATTERN
    ignore_case: bool = True
    front_matter_title: str = FRONT_MATTER_TITLE
    fallback_title: str = FALLBACK_CHAPTER_TITLE
    preview_chars: int = 250


@dataclass
class FinalizationConfig:
    """Placeholder resolution configuration."""
    image_extensions: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif")
    # None = "/<images dir name>"
    url_prefix: Optional[str] = None


@dataclass
class AssetConfig:
    """Image asset extraction configuration."""
    pdfimages_path: str = "pdfimages"
    cover_dpi: int = 150
    cleanup_masks: bool = True


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    reconstruction: ReconstructionConfig = field(default_factory=ReconstructionConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    finalization: FinalizationConfig = field(default_factory=FinalizationConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)

    # Global settings
    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={value!r}")
        return default


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    config.reconstruction.paragraph_threshold = _env_float(
        "BOOK_RECON_PARAGRAPH_THRESHOLD", config.reconstruction.paragraph_threshold
    )
    config.reconstruction.same_line_tolerance = _env_float(
        "BOOK_RECON_LINE_TOLERANCE", config.reconstruction.same_line_tolerance
    )
    config.analysis.min_image_size = _env_float(
        "BOOK_RECON_MIN_IMAGE_SIZE", config.analysis.min_image_size
    )
    config.analysis.max_workers = max(
        1, int(_env_float("BOOK_RECON_WORKERS", config.analysis.max_workers))
    )

    if os.environ.get("BOOK_RECON_DEBUG", "").lower() == "true":
        config.debug_mode = True

    return config
