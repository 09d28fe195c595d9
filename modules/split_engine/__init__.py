"""
Split Engine Module
===================

Responsibility:
- The Split contract (train/test index arrays into the original dataset).
- Adapting scikit-learn cross-validators to that contract.
- Resolving default and integer `cv` arguments into splitters.
"""

from .split_engine import Split, BaseSplitter, SklearnSplitter, make_splitter

__all__ = ['Split', 'BaseSplitter', 'SklearnSplitter', 'make_splitter']
