"""
Utility modules for the book reconstruction pipeline.
"""

from .graphics_state import GraphicsOp, GraphicsStateTracker, OpKind, IDENTITY
from .pdf_source import PageSource, TextRun, load_page_sources
from .layout import ContentElement, ElementType, LayoutAnalyzer, analyze_page
from .reading_order import ReadingOrderReconstructor, ReconstructionResult, sort_elements
from .chapters import Chapter, ChapterSegmenter, format_report
from .finalize import Finalizer, FinalizationResult, build_image_inventory, natural_sort_key
from .io import save_json, load_json, save_elements, load_elements, ensure_dir
from .io import append_sections, load_sections, ProcessingProgress
from .pipeline import BookEntry, BookPipeline, RunReport

__all__ = [
    # Graphics state
    "GraphicsOp", "GraphicsStateTracker", "OpKind", "IDENTITY",
    # Layout
    "PageSource", "TextRun", "load_page_sources",
    "ContentElement", "ElementType", "LayoutAnalyzer", "analyze_page",
    # Reconstruction
    "ReadingOrderReconstructor", "ReconstructionResult", "sort_elements",
    # Chapters
    "Chapter", "ChapterSegmenter", "format_report",
    # Finalization
    "Finalizer", "FinalizationResult", "build_image_inventory", "natural_sort_key",
    # IO
    "save_json", "load_json", "save_elements", "load_elements", "ensure_dir",
    "append_sections", "load_sections", "ProcessingProgress",
    # Pipeline
    "BookEntry", "BookPipeline", "RunReport",
]
