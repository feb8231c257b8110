"""
Pipeline orchestration for book reconstruction.

Provides:
- BookEntry, the manifest record for one book
- BookPipeline, which runs the phases for one book and skips phases whose
  output already exists
- RunReport, the per-run status and problem summary
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config import PLACEHOLDER_PATTERN, PipelineConfig, get_config
from .io import (
    ProcessingProgress,
    ensure_dir,
    load_elements,
    load_json,
    load_text,
    save_elements,
    save_json,
    save_text,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

class BookStatus:
    """Outcome identifiers for one book."""
    COMPLETE = "complete"
    ALREADY_DONE = "already_done"
    AWAITING_STRUCTURING = "awaiting_structuring"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class BookEntry:
    """One book listed in the manifest."""
    filename: str
    title: str
    year: Optional[Any] = None
    license: Optional[str] = None
    source: Optional[str] = None

    @property
    def identifier(self) -> str:
        return Path(self.filename).stem

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BookEntry':
        if "filename" not in data:
            raise ValueError(f"Manifest entry has no filename: {data}")
        return cls(
            filename=data["filename"],
            title=data.get("title") or Path(data["filename"]).stem,
            year=data.get("year"),
            license=data.get("license"),
            source=data.get("source"),
        )

    def metadata(self) -> Dict[str, Any]:
        return {"year": self.year, "license": self.license, "source": self.source}


@dataclass
class BookPaths:
    """Artifact locations for one book."""
    pdf: Path
    images_dir: Path
    covers_dir: Path
    analysis: Path
    reconstructed: Path
    chapters: Path
    section_log: Path
    final: Path


@dataclass
class BookReport:
    """What happened to one book."""
    identifier: str
    title: str
    status: str = ""
    phases_run: List[str] = field(default_factory=list)
    phases_skipped: List[str] = field(default_factory=list)
    placeholder_count: int = 0
    chapter_count: int = 0
    progress: ProcessingProgress = field(default_factory=ProcessingProgress)
    processing_time_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "status": self.status,
            "phases_run": self.phases_run,
            "phases_skipped": self.phases_skipped,
            "placeholder_count": self.placeholder_count,
            "chapter_count": self.chapter_count,
            "warnings": self.progress.warnings,
            "errors": self.progress.errors,
            "processing_time_seconds": round(self.processing_time_seconds, 2),
        }


@dataclass
class RunReport:
    """Summary of a pipeline run over one or more books."""
    books: List[BookReport] = field(default_factory=list)

    @property
    def warning_count(self) -> int:
        return sum(len(b.progress.warnings) for b in self.books)

    @property
    def error_count(self) -> int:
        return sum(len(b.progress.errors) for b in self.books)

    @property
    def failed(self) -> List[BookReport]:
        return [b for b in self.books if b.status == BookStatus.FAILED]

    def summary_lines(self) -> List[str]:
        lines = []
        for book in self.books:
            lines.append(
                f"{book.title} [{book.status}] "
                f"placeholders={book.placeholder_count} chapters={book.chapter_count} "
                f"warnings={len(book.progress.warnings)} errors={len(book.progress.errors)}"
            )
            for error in book.progress.errors:
                lines.append(f"  error: {error}")
        lines.append(
            f"{len(self.books)} book(s), {self.warning_count} warning(s), "
            f"{self.error_count} error(s)"
        )
        return lines


# ============================================================================
# Book Pipeline
# ============================================================================

class BookPipeline:
    """
    Runs the reconstruction phases for books.

    Phases: asset extraction, layout analysis, reading-order reconstruction,
    chapter segmentation and finalization. Structuring chapters into sections
    happens outside this package; until its section log exists a book stops
    after segmentation.
    """

    def __init__(
        self,
        books_dir: Union[str, Path],
        output_dir: Union[str, Path],
        public_dir: Union[str, Path],
        config: Optional[PipelineConfig] = None,
        extract_assets: bool = True
    ):
        self.books_dir = Path(books_dir)
        self.output_dir = Path(output_dir)
        self.public_dir = Path(public_dir)
        self.config = config or get_config()
        self.extract_assets = extract_assets

        # Initialize components lazily
        self._layout_analyzer = None
        self._reconstructor = None
        self._segmenter = None
        self._finalizer = None

    @property
    def layout_analyzer(self):
        if self._layout_analyzer is None:
            from .layout import LayoutAnalyzer
            self._layout_analyzer = LayoutAnalyzer.from_config(self.config.analysis)
        return self._layout_analyzer

    @property
    def reconstructor(self):
        if self._reconstructor is None:
            from .reading_order import ReadingOrderReconstructor
            self._reconstructor = ReadingOrderReconstructor.from_config(self.config.reconstruction)
        return self._reconstructor

    @property
    def segmenter(self):
        if self._segmenter is None:
            from .chapters import ChapterSegmenter
            self._segmenter = ChapterSegmenter.from_config(self.config.segmentation)
        return self._segmenter

    @property
    def finalizer(self):
        if self._finalizer is None:
            from .finalize import Finalizer
            self._finalizer = Finalizer.from_config(self.config.finalization)
        return self._finalizer

    def paths_for(self, entry: BookEntry) -> BookPaths:
        ident = entry.identifier
        return BookPaths(
            pdf=self.books_dir / entry.filename,
            images_dir=self.public_dir / f"{ident}-images",
            covers_dir=self.public_dir / "covers",
            analysis=self.output_dir / f"{ident}-analysis.json",
            reconstructed=self.output_dir / f"{ident}-reconstructed.txt",
            chapters=self.output_dir / f"{ident}-chapters.json",
            section_log=self.output_dir / f"{ident}-structured.log.jsonl",
            final=self.output_dir / f"oer-library-{ident}.json",
        )

    def _phase(self, report: BookReport, name: str, output: Path) -> bool:
        """True if the phase needs to run."""
        if output.exists():
            logger.info(f"Skipping {name}: {output.name} already exists")
            report.phases_skipped.append(name)
            return False
        logger.info(f"--- Starting {name} ---")
        report.phases_run.append(name)
        return True

    def process_book(self, entry: BookEntry) -> BookReport:
        """
        Run every phase for one book.

        Raises:
            FileNotFoundError: If the book's PDF is missing
            RuntimeError: If the PDF or its images cannot be processed
        """
        start_time = time.time()
        paths = self.paths_for(entry)
        report = BookReport(identifier=entry.identifier, title=entry.title)
        progress = report.progress

        logger.info(f"Processing book: {entry.title!r}")

        if paths.final.exists():
            logger.info(f"Skipping book: final output for {entry.title!r} already exists")
            report.status = BookStatus.ALREADY_DONE
            return report

        if not paths.pdf.exists():
            raise FileNotFoundError(f"PDF file not found: {paths.pdf}")

        ensure_dir(self.output_dir)

        # 1. Assets
        if self.extract_assets and self._phase(report, "asset extraction", paths.images_dir):
            from .assets import extract_images, generate_cover
            generate_cover(paths.pdf, paths.covers_dir, entry.identifier,
                           dpi=self.config.assets.cover_dpi)
            extract_images(
                paths.pdf,
                paths.images_dir,
                entry.identifier,
                pdfimages_path=self.config.assets.pdfimages_path,
                cleanup_masks=self.config.assets.cleanup_masks,
            )

        # 2. Layout analysis
        if self._phase(report, "layout analysis", paths.analysis):
            analysis = self.layout_analyzer.analyze(paths.pdf, progress=progress)
            save_elements(analysis.elements, paths.analysis)
            logger.info(f"Layout analysis complete: found {analysis.image_count} image placement(s)")

        # 3. Reconstruction
        if self._phase(report, "reconstruction", paths.reconstructed):
            elements = load_elements(paths.analysis)
            result = self.reconstructor.reconstruct(elements)
            save_text(result.text, paths.reconstructed)
        text = load_text(paths.reconstructed)
        report.placeholder_count = len(PLACEHOLDER_PATTERN.findall(text))

        # 4. Segmentation
        if self._phase(report, "segmentation", paths.chapters):
            chapters = self.segmenter.split(text)
            save_json([c.to_dict() for c in chapters], paths.chapters)
            report.chapter_count = len(chapters)
        else:
            report.chapter_count = len(load_json(paths.chapters))

        # 5. Finalization, once the structured sections exist
        if not paths.section_log.exists():
            logger.info(
                f"No structured section log yet ({paths.section_log.name}); "
                f"finalization deferred"
            )
            report.status = BookStatus.AWAITING_STRUCTURING
        else:
            report.phases_run.append("finalization")
            result = self.finalizer.finalize(
                paths.section_log,
                paths.images_dir,
                output_path=paths.final,
                book_title=entry.title,
                metadata=entry.metadata(),
            )
            for warning in result.warnings:
                progress.warnings.append(warning)
            report.status = BookStatus.COMPLETE

        report.processing_time_seconds = time.time() - start_time
        logger.info(
            f"Finished {entry.title!r} in {report.processing_time_seconds:.2f}s "
            f"({progress.summary()})"
        )
        return report

    def run_manifest(self, manifest_path: Optional[Union[str, Path]] = None) -> RunReport:
        """
        Process every book listed in a manifest.

        A book whose PDF is missing or which fails is recorded and skipped;
        the remaining books still run.

        Raises:
            FileNotFoundError: If the manifest is missing
            ValueError: If the manifest is not a JSON array
        """
        manifest_path = Path(manifest_path) if manifest_path else self.books_dir / "manifest.json"
        if not manifest_path.exists():
            raise FileNotFoundError(f"Manifest not found: {manifest_path}")

        data = load_json(manifest_path)
        if not isinstance(data, list):
            raise ValueError(f"Manifest must be a JSON array: {manifest_path}")

        run = RunReport()
        if not data:
            logger.info("No books listed in the manifest")
            return run

        entries = [BookEntry.from_dict(item) for item in data]
        logger.info(f"Found {len(entries)} book(s) in the manifest")

        for entry in entries:
            try:
                report = self.process_book(entry)
            except FileNotFoundError as e:
                report = BookReport(identifier=entry.identifier, title=entry.title,
                                    status=BookStatus.SKIPPED)
                report.progress.add_error(str(e))
            except (RuntimeError, ValueError) as e:
                report = BookReport(identifier=entry.identifier, title=entry.title,
                                    status=BookStatus.FAILED)
                report.progress.add_error(f"{entry.title}: {e}")
            run.books.append(report)

        return run
