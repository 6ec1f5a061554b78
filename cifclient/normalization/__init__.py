"""
Response normalization
"""
from cifclient.normalization.normalizer import (
    FIELD_RULES,
    FieldRule,
    ResponseNormalizer,
    normalize_response,
)
from cifclient.normalization.timestamps import (
    format_timestamp,
    parse_epoch,
    parse_timestamp,
)

__all__ = [
    'FIELD_RULES',
    'FieldRule',
    'ResponseNormalizer',
    'normalize_response',
    'format_timestamp',
    'parse_epoch',
    'parse_timestamp',
]
