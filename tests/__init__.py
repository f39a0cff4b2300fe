"""Test suite for depconfuse.

This package contains unit and integration tests for all depconfuse modules:
- test_extractor: structured and heuristic reference extraction
- test_registry: memoization, concurrency bound and conservative policy
- test_classifier: the classification table and presentation ordering
- test_scanner: end-to-end scans against stub registries and fixture trees
"""
