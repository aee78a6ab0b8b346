"""
Extraction package

Turns rendered review nodes into validated records, retrying whole passes on
structural failures.
"""

from extraction.records import Record, RecordSet, parse_rating
from extraction.review_extractor import ReviewExtractor

__all__ = [
    'Record',
    'RecordSet',
    'parse_rating',
    'ReviewExtractor'
]
