"""
Finalization: resolve image placeholders against extracted image assets.

Placeholder binding is positional. Placeholder k refers to entry k-1 of the
naturally sorted image inventory, so the inventory order must match the order
in which images were painted.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..config import PLACEHOLDER_PATTERN
from .io import load_sections, save_json

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif")

_DIGITS = re.compile(r"(\d+)")


# ============================================================================
# Image Inventory
# ============================================================================

def natural_sort_key(name: str):
    """Case-insensitive sort key that orders digit runs numerically."""
    parts = _DIGITS.split(name)
    # re.split with a capture group alternates text, digits, text, ...
    key = [int(part) if i % 2 else part.casefold() for i, part in enumerate(parts)]
    return key, name


def build_image_inventory(
    images_dir: Union[str, Path],
    extensions: Sequence[str] = DEFAULT_IMAGE_EXTENSIONS
) -> List[str]:
    """
    List image filenames in a directory, naturally sorted.

    A missing directory yields an empty inventory (logged, not raised).
    """
    images_dir = Path(images_dir)
    if not images_dir.is_dir():
        logger.warning(f"Image directory not found: {images_dir}; no placeholder can be resolved")
        return []

    wanted = {ext.lower() for ext in extensions}
    names = [
        f.name for f in images_dir.iterdir()
        if f.is_file() and f.suffix.lower() in wanted
    ]
    names.sort(key=natural_sort_key)

    if not names:
        logger.warning(f"No images found in {images_dir}")
    else:
        logger.info(f"Found {len(names)} image(s) in {images_dir}")
    return names


# ============================================================================
# Placeholder Resolution
# ============================================================================

@dataclass
class FinalizationResult:
    """Finalized sections plus resolution diagnostics."""
    sections: List[Dict[str, Any]]
    inventory: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    resolved_count: int = 0
    unresolved_count: int = 0


def image_reference(src: str, label: str, number: int) -> str:
    """HTML image tag for a resolved placeholder."""
    alt = f"{label} - Image {number}" if label else f"Image {number}"
    return f'<img src="{html.escape(src, quote=True)}" alt="{html.escape(alt, quote=True)}">'


def resolve_placeholders(
    content: str,
    inventory: Sequence[str],
    url_prefix: str = "",
    label: str = ""
) -> Tuple[str, int, List[int]]:
    """
    Replace placeholder tokens in one content string.

    Returns:
        (resolved content, number of resolved tokens, unresolved placeholder numbers)
    """
    resolved = 0
    missing: List[int] = []

    def _replace(match: re.Match) -> str:
        nonlocal resolved
        number = int(match.group(1))
        index = number - 1
        if 0 <= index < len(inventory):
            resolved += 1
            return image_reference(f"{url_prefix}/{inventory[index]}", label, number)
        missing.append(number)
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, content), resolved, missing


class Finalizer:
    """Merges structured sections with the image inventory."""

    def __init__(
        self,
        image_extensions: Sequence[str] = DEFAULT_IMAGE_EXTENSIONS,
        url_prefix: Optional[str] = None
    ):
        self.image_extensions = tuple(image_extensions)
        self.url_prefix = url_prefix

    @classmethod
    def from_config(cls, config) -> 'Finalizer':
        """Build a finalizer from a FinalizationConfig."""
        return cls(image_extensions=config.image_extensions, url_prefix=config.url_prefix)

    def finalize_sections(
        self,
        sections: List[Dict[str, Any]],
        images_dir: Union[str, Path],
        book_title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> FinalizationResult:
        """
        Resolve placeholders in every section.

        Args:
            sections: Structured section records, in order
            images_dir: Directory holding the extracted images
            book_title: Used when a section has no bookTitle of its own
            metadata: Extra fields (year, license, source) added to each section

        Raises:
            ValueError: If there are no sections to finalize
        """
        if not sections:
            raise ValueError("No structured sections to finalize")

        images_dir = Path(images_dir)
        inventory = build_image_inventory(images_dir, self.image_extensions)
        url_prefix = self.url_prefix if self.url_prefix is not None else f"/{images_dir.name}"
        extra = {k: v for k, v in (metadata or {}).items() if v is not None}

        result = FinalizationResult(sections=[], inventory=inventory)
        for position, section in enumerate(sections):
            finalized = dict(section)
            if book_title and not finalized.get("bookTitle"):
                finalized["bookTitle"] = book_title
            label = finalized.get("bookTitle") or book_title or ""

            content = section.get("content")
            if isinstance(content, str):
                new_content, resolved, missing = resolve_placeholders(
                    content, inventory, url_prefix, label
                )
                finalized["content"] = new_content
                result.resolved_count += resolved
                result.unresolved_count += len(missing)
                for number in missing:
                    warning = (
                        f"Section {position + 1} ({section.get('chapterTitle', '?')!r}): "
                        f"no image for [IMAGE_PLACEHOLDER_{number}] "
                        f"(inventory has {len(inventory)})"
                    )
                    result.warnings.append(warning)
                    logger.warning(warning)

            finalized.update(extra)
            result.sections.append(finalized)

        logger.info(
            f"Finalized {len(result.sections)} section(s): "
            f"{result.resolved_count} placeholder(s) resolved, "
            f"{result.unresolved_count} unresolved"
        )
        return result

    def finalize(
        self,
        log_path: Union[str, Path],
        images_dir: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        book_title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> FinalizationResult:
        """
        Finalize a structured-section log and optionally write the result.

        Raises:
            FileNotFoundError: If the section log is missing
            ValueError: If the section log is empty or malformed
        """
        sections = load_sections(log_path)
        if not sections:
            raise ValueError(f"Structured section log is empty: {log_path}")

        result = self.finalize_sections(sections, images_dir, book_title, metadata)

        if output_path is not None:
            save_json(result.sections, output_path)
            logger.info(f"Final output saved to {output_path}")
        return result
