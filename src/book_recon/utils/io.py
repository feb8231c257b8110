"""
I/O utilities for the book reconstruction pipeline.

Handles:
- JSON serialization
- Content element artifacts
- Reconstructed text artifacts
- The structured-section log (JSON lines)
- Directory management
- Progress tracking
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .layout import ContentElement

logger = logging.getLogger(__name__)


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy values, dataclasses and paths."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """
    Load data from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Pipeline Artifacts
# ============================================================================

def save_elements(elements: List[ContentElement], output_path: Union[str, Path]) -> Path:
    """Write content elements as a JSON array of records."""
    return save_json([e.to_dict() for e in elements], output_path)


def load_elements(input_path: Union[str, Path]) -> List[ContentElement]:
    """Read content elements written by save_elements."""
    data = load_json(input_path)
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array of elements in {input_path}")
    return [ContentElement.from_dict(record) for record in data]


def save_text(text: str, output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding='utf-8')
    logger.debug(f"Saved text: {output_path}")
    return output_path


def load_text(input_path: Union[str, Path]) -> str:
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Text file not found: {input_path}")
    return input_path.read_text(encoding='utf-8')


# ============================================================================
# Structured-Section Log
# ============================================================================

def append_sections(log_path: Union[str, Path], sections: List[Dict[str, Any]]) -> Path:
    """
    Append section records to a JSON-lines log, one record per line.

    Used by the structuring step to checkpoint each chapter as it arrives.
    """
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    with open(log_path, 'a', encoding='utf-8') as f:
        for section in sections:
            f.write(json.dumps(section, ensure_ascii=False, cls=EnhancedJSONEncoder))
            f.write("\n")

    if sections:
        logger.info(f"Log updated for chapter: {sections[0].get('chapterTitle', '?')!r}")
    return log_path


def load_sections(log_path: Union[str, Path], missing_ok: bool = False) -> List[Dict[str, Any]]:
    """
    Read every section record from a JSON-lines log.

    Args:
        log_path: Path to the log
        missing_ok: Return an empty list instead of raising when the log is absent

    Raises:
        FileNotFoundError: If the log doesn't exist and missing_ok is False
        ValueError: If a line is not a JSON object
    """
    log_path = Path(log_path)
    if not log_path.exists():
        if missing_ok:
            return []
        raise FileNotFoundError(f"Structured section log not found: {log_path}")

    sections = []
    with open(log_path, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"Malformed section record at {log_path}:{line_number}: {e}") from e
            if not isinstance(record, dict):
                raise ValueError(f"Section record at {log_path}:{line_number} is not an object")
            sections.append(record)
    return sections


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


# ============================================================================
# Progress Tracking
# ============================================================================

@dataclass
class ProcessingProgress:
    """Track progress and recoverable problems of one pipeline run."""
    total_pages: int = 0
    processed_pages: int = 0
    current_stage: str = ""
    current_page: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def percent_complete(self) -> float:
        if self.total_pages == 0:
            return 0.0
        return (self.processed_pages / self.total_pages) * 100

    def update(self, stage: str, page: Optional[int] = None):
        self.current_stage = stage
        if page is not None:
            self.current_page = page

    def complete_page(self):
        self.processed_pages += 1

    def add_error(self, error: str):
        self.errors.append(error)
        logger.error(error)

    def add_warning(self, warning: str):
        self.warnings.append(warning)
        logger.warning(warning)

    def summary(self) -> str:
        return f"{len(self.warnings)} warning(s), {len(self.errors)} error(s)"
