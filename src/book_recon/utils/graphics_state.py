"""
Graphics state tracking for page drawing operations.

Provides:
- GraphicsOp records (save, restore, transform, paint image)
- GraphicsStateTracker, the affine transform stack for one page scan
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Matrix = Tuple[float, float, float, float, float, float]

IDENTITY: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


# ============================================================================
# Operations
# ============================================================================

class OpKind(Enum):
    """Drawing operations relevant to image placement."""
    SAVE = "save"
    RESTORE = "restore"
    TRANSFORM = "transform"
    PAINT_IMAGE = "paint_image"


@dataclass(frozen=True)
class GraphicsOp:
    """A single drawing operation with its arguments."""
    kind: OpKind
    args: tuple = ()

    def __post_init__(self):
        # accept the enum value ("save", "paint_image", ...) as well as the member
        if not isinstance(self.kind, OpKind):
            object.__setattr__(self, "kind", OpKind(self.kind))
        object.__setattr__(self, "args", tuple(self.args))

    @classmethod
    def save(cls) -> 'GraphicsOp':
        return cls(OpKind.SAVE)

    @classmethod
    def restore(cls) -> 'GraphicsOp':
        return cls(OpKind.RESTORE)

    @classmethod
    def transform(cls, a, b, c, d, e, f) -> 'GraphicsOp':
        return cls(OpKind.TRANSFORM, (float(a), float(b), float(c), float(d), float(e), float(f)))

    @classmethod
    def paint_image(cls, name: str = "") -> 'GraphicsOp':
        return cls(OpKind.PAINT_IMAGE, (name,))


# ============================================================================
# Matrix Helpers
# ============================================================================

def to_affine(matrix: Matrix) -> np.ndarray:
    """Expand [a, b, c, d, e, f] to the 3x3 row-vector form used by PDF."""
    a, b, c, d, e, f = matrix
    return np.array([
        [a, b, 0.0],
        [c, d, 0.0],
        [e, f, 1.0],
    ], dtype=float)


def from_affine(affine: np.ndarray) -> Matrix:
    return (
        float(affine[0, 0]), float(affine[0, 1]),
        float(affine[1, 0]), float(affine[1, 1]),
        float(affine[2, 0]), float(affine[2, 1]),
    )


def multiply(first: Matrix, second: Matrix) -> Matrix:
    """Concatenate two transforms: apply `first`, then `second`."""
    return from_affine(to_affine(first) @ to_affine(second))


# ============================================================================
# Tracker
# ============================================================================

class GraphicsStateTracker:
    """
    Affine transform stack for a single linear scan of one page.

    By default a transform operation replaces the current matrix, since image
    placement matrices are emitted as absolute values. With `compose=True`
    the operation is concatenated onto the current matrix instead.

    A restore on an empty stack resets to the identity transform rather than
    failing; such underflows are counted in `restore_underflows`.
    """

    def __init__(self, compose: bool = False):
        self.compose = compose
        self._current: Matrix = IDENTITY
        self._stack: List[Matrix] = []
        self.restore_underflows = 0

    @property
    def current_transform(self) -> Matrix:
        return self._current

    @property
    def depth(self) -> int:
        return len(self._stack)

    def save(self):
        self._stack.append(self._current)

    def restore(self):
        if self._stack:
            self._current = self._stack.pop()
        else:
            self.restore_underflows += 1
            logger.debug("Restore with empty graphics stack; resetting to identity")
            self._current = IDENTITY

    def set_transform(self, matrix: Matrix):
        try:
            matrix = tuple(float(v) for v in matrix)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring transform with non-numeric components: {matrix!r}")
            return
        if len(matrix) != 6:
            logger.debug(f"Ignoring transform with {len(matrix)} components")
            return
        if self.compose:
            self._current = multiply(matrix, self._current)
        else:
            self._current = matrix

    def apply(self, op: GraphicsOp) -> Matrix:
        """Process one operation and return the transform now in effect."""
        if op.kind is OpKind.SAVE:
            self.save()
        elif op.kind is OpKind.RESTORE:
            self.restore()
        elif op.kind is OpKind.TRANSFORM:
            self.set_transform(op.args)
        return self._current

    def run(self, operations: List[GraphicsOp]) -> Matrix:
        for op in operations:
            self.apply(op)
        return self._current
