"""
Book Reconstruction Pipeline
============================

Turns paginated PDF books into linear, structured content for indexing and
editing tools.

Main components:
- Layout analysis (positioned text runs and image placements)
- Reading-order reconstruction into a single annotated text stream
- Chapter segmentation by heading heuristics
- Image asset extraction and placeholder finalization
"""

__version__ = "1.0.0"
__author__ = "Book Reconstruction Team"
