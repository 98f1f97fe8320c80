#!/usr/bin/env python3
"""
Record extraction: title strategies and field chains.
"""

from .strategies import (
    TitleStrategy, TitleCandidate, AnchorScopedTitleStrategy, SiblingRowTitleStrategy,
    TitleExtractionChain, is_valid_title
)
from .fields import FieldChain, parse_score, parse_author, SCORE_CHAIN, AUTHOR_CHAIN, TIMESTAMP_CHAIN

__all__ = [
    'TitleStrategy', 'TitleCandidate', 'AnchorScopedTitleStrategy', 'SiblingRowTitleStrategy',
    'TitleExtractionChain', 'is_valid_title',
    'FieldChain', 'parse_score', 'parse_author', 'SCORE_CHAIN', 'AUTHOR_CHAIN', 'TIMESTAMP_CHAIN'
]
