#!/usr/bin/env python
"""
Command-line interface for the Book Reconstruction Pipeline.

Usage:
    book-recon <command> [options]

Examples:
    # Extract positioned text runs and image placements
    book-recon analyze --input book.pdf --output book-analysis.json

    # Rebuild the linear text stream
    book-recon reconstruct --input book-analysis.json --output book.txt

    # Check how the heading heuristics split the stream
    book-recon segment --input book.txt

    # Resolve placeholders in the structured section log
    book-recon finalize --log book.log.jsonl --images public/book-images --output book.json

    # Process every book in the manifest
    book-recon run --books-dir src/books --output-dir src/lib --public-dir public
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from . import __version__

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("book_recon")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="book-recon",
        description="Book Reconstruction Pipeline - Convert paginated PDFs into structured content",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Re-raise errors with a traceback"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # analyze
    p = sub.add_parser("analyze", help="Extract text runs and image placements from a PDF")
    p.add_argument("--input", "-i", required=True, help="Input PDF file")
    p.add_argument("--output", "-o", required=True, help="Output JSON file of content elements")
    p.add_argument("--min-image-size", type=float, default=None,
                   help="Drop images smaller than this many points (default: keep all)")
    p.add_argument("--compose-transforms", action="store_true",
                   help="Concatenate transform operations instead of replacing them")
    p.add_argument("--workers", type=int, default=None,
                   help="Worker threads for per-page analysis")

    # reconstruct
    p = sub.add_parser("reconstruct", help="Build the linear text stream from content elements")
    p.add_argument("--input", "-i", required=True, help="Content element JSON file")
    p.add_argument("--output", "-o", required=True, help="Output text file")
    p.add_argument("--paragraph-threshold", type=float, default=None,
                   help="Vertical gap (points) that starts a new paragraph (default: 10)")
    p.add_argument("--line-tolerance", type=float, default=None,
                   help="Vertical tolerance (points) for elements on one line (default: 5)")

    # segment
    p = sub.add_parser("segment", help="Split a text stream into chapters and report them")
    p.add_argument("--input", "-i", required=True, help="Reconstructed text file")
    p.add_argument("--output", "-o", default=None, help="Optional JSON file for the chapters")
    p.add_argument("--pattern", default=None, help="Override the heading regular expression")

    # extract-assets
    p = sub.add_parser("extract-assets", help="Extract embedded images and render a cover")
    p.add_argument("--input", "-i", required=True, help="Input PDF file")
    p.add_argument("--images-dir", required=True, help="Directory for extracted images")
    p.add_argument("--covers-dir", default=None, help="Directory for the cover image")
    p.add_argument("--prefix", default=None, help="Image filename prefix (default: PDF stem)")

    # finalize
    p = sub.add_parser("finalize", help="Resolve image placeholders in structured sections")
    p.add_argument("--log", required=True, help="Structured section log (JSON lines)")
    p.add_argument("--images", required=True, help="Directory of extracted images")
    p.add_argument("--output", "-o", required=True, help="Output JSON file")
    p.add_argument("--book-title", default=None, help="Book title for sections and alt text")
    p.add_argument("--year", default=None)
    p.add_argument("--license", default=None)
    p.add_argument("--source", default=None)
    p.add_argument("--url-prefix", default=None,
                   help="Prefix for image URLs (default: /<images dir name>)")

    # run
    p = sub.add_parser("run", help="Process every book in the manifest")
    p.add_argument("--books-dir", required=True, help="Directory with the PDFs and manifest.json")
    p.add_argument("--output-dir", required=True, help="Directory for pipeline artifacts")
    p.add_argument("--public-dir", required=True, help="Directory for images and covers")
    p.add_argument("--manifest", default=None, help="Manifest path (default: <books-dir>/manifest.json)")
    p.add_argument("--no-assets", action="store_true", help="Skip image extraction and covers")

    return parser


def _apply_overrides(config, args):
    """Copy command-line tuning options onto the configuration."""
    if getattr(args, "min_image_size", None) is not None:
        config.analysis.min_image_size = args.min_image_size
    if getattr(args, "compose_transforms", False):
        config.analysis.compose_transforms = True
    if getattr(args, "workers", None):
        config.analysis.max_workers = max(1, args.workers)
    if getattr(args, "paragraph_threshold", None) is not None:
        config.reconstruction.paragraph_threshold = args.paragraph_threshold
    if getattr(args, "line_tolerance", None) is not None:
        config.reconstruction.same_line_tolerance = args.line_tolerance
    if getattr(args, "pattern", None):
        config.segmentation.heading_pattern = args.pattern
    if getattr(args, "url_prefix", None) is not None:
        config.finalization.url_prefix = args.url_prefix
    return config


def cmd_analyze(args, config) -> int:
    from .utils.io import ProcessingProgress, save_elements
    from .utils.layout import LayoutAnalyzer

    progress = ProcessingProgress()
    result = LayoutAnalyzer.from_config(config.analysis).analyze(args.input, progress=progress)
    save_elements(result.elements, args.output)

    if not args.quiet:
        print(f"Pages: {result.page_count} (skipped: {len(result.failed_pages)})")
        print(f"Text runs: {result.text_count}")
        print(f"Image placements: {result.image_count}")
        print(f"Saved: {args.output}")
    return 0


def cmd_reconstruct(args, config) -> int:
    from .utils.io import load_elements, save_text
    from .utils.reading_order import ReadingOrderReconstructor

    elements = load_elements(args.input)
    if not elements:
        logger.warning(f"No content elements in {args.input}; writing an empty stream")
    result = ReadingOrderReconstructor.from_config(config.reconstruction).reconstruct(elements)
    save_text(result.text, args.output)

    if not args.quiet:
        print(f"Processed {result.element_count} content elements.")
        print(f"Inserted {result.placeholder_count} image placeholders.")
        print(f"Saved: {args.output}")
    return 0


def cmd_segment(args, config) -> int:
    from .utils.chapters import ChapterSegmenter, format_report
    from .utils.io import load_text, save_json

    text = load_text(args.input)
    chapters = ChapterSegmenter.from_config(config.segmentation).split(text)

    if args.output:
        save_json([c.to_dict() for c in chapters], args.output)
    if not args.quiet:
        print(format_report(chapters, config.segmentation.preview_chars))
    return 0


def cmd_extract_assets(args, config) -> int:
    from .utils.assets import extract_images, generate_cover

    pdf_path = Path(args.input)
    prefix = args.prefix or pdf_path.stem
    if args.covers_dir:
        generate_cover(pdf_path, args.covers_dir, prefix, dpi=config.assets.cover_dpi)
    extract_images(
        pdf_path,
        args.images_dir,
        prefix,
        pdfimages_path=config.assets.pdfimages_path,
        cleanup_masks=config.assets.cleanup_masks,
    )
    return 0


def cmd_finalize(args, config) -> int:
    from .utils.finalize import Finalizer

    result = Finalizer.from_config(config.finalization).finalize(
        args.log,
        args.images,
        output_path=args.output,
        book_title=args.book_title,
        metadata={"year": args.year, "license": args.license, "source": args.source},
    )

    if not args.quiet:
        print(f"Sections: {len(result.sections)}")
        print(f"Images in inventory: {len(result.inventory)}")
        print(f"Placeholders resolved: {result.resolved_count}, unresolved: {result.unresolved_count}")
        for warning in result.warnings:
            print(f"  warning: {warning}")
    return 0


def cmd_run(args, config) -> int:
    from .utils.pipeline import BookPipeline

    start_time = time.time()
    pipeline = BookPipeline(
        args.books_dir,
        args.output_dir,
        args.public_dir,
        config=config,
        extract_assets=not args.no_assets,
    )
    report = pipeline.run_manifest(args.manifest)

    if not args.quiet:
        print("\n" + "=" * 60)
        print("PIPELINE COMPLETE")
        print("=" * 60)
        for line in report.summary_lines():
            print(line)
        print(f"Processing time: {time.time() - start_time:.2f}s")
        print("=" * 60)
    return 1 if report.failed else 0


COMMANDS = {
    "analyze": cmd_analyze,
    "reconstruct": cmd_reconstruct,
    "segment": cmd_segment,
    "extract-assets": cmd_extract_assets,
    "finalize": cmd_finalize,
    "run": cmd_run,
}


def main(argv=None):
    """Main entry point."""
    from .config import get_config

    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    config = _apply_overrides(get_config(), args)
    if args.debug:
        config.debug_mode = True

    try:
        exit_code = COMMANDS[args.command](args, config)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except (FileNotFoundError, NotADirectoryError, ValueError, RuntimeError) as e:
        logger.error(str(e))
        if config.debug_mode:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
