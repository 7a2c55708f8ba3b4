# FILE: aligner/__init__.py
"""
Region-anchored alignment of a photo sequence.

This package provides:
- Transform algebra (compose, canvas <-> image mapping, affine helpers)
- Translation solving from user-selected regions
- Robust correspondence filtering (median gate + sigma gate)
- Brute-force rotation search about the region centre
- An ORB/Hamming detector-matcher adapter
- AlignmentOrchestrator sequencing the translation and rotation passes

Each image ends up with a Transform (scale, rotation, translation); pixels are
never resampled by the aligner itself.

Entry point:
    python -m aligner.pipeline --manifest images.yaml --config config/params.yaml
"""
from .orchestrator import AlignmentOrchestrator, AlignmentReport, run_alignment
from .transform import IDENTITY, compose, compose_all

__all__ = [
    "AlignmentOrchestrator",
    "AlignmentReport",
    "run_alignment",
    "IDENTITY",
    "compose",
    "compose_all",
]
