"""
Aligner Test Suite

Tests for region-anchored photo sequence alignment.

Structure:
- unit/: Unit tests for transform algebra, solvers, filter, orchestrator, ORB adapter
- integration/: Command-line runs over real image files
"""
