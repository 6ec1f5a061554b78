"""
Request and result models
"""
from cifclient.models.request import APIRequest, HTTPMethod
from cifclient.models.results import (
    Boolean,
    NormalizedRecord,
    NormalizedResult,
    Records,
    Scalar,
)

__all__ = [
    'APIRequest',
    'HTTPMethod',
    'Boolean',
    'NormalizedRecord',
    'NormalizedResult',
    'Records',
    'Scalar',
]
