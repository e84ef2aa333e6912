"""
Core calendar document engine.

This package contains:
- Line unfolding and folding
- Content-line parsing
- Component tree building and serialization
- Anonymize and filter transforms
- Upstream fetching and metrics collection
"""
