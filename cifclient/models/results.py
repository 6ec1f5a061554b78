"""
Tagged result variants returned by the response normalizer

A call yields either a sequence of records, a single scalar (affected row
counts, plain strings) or a single boolean. Callers match on the variant
type instead of probing the payload.
"""
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

# Ordered mapping of canonical field name -> value. Sparse: only fields
# present in the source object appear.
NormalizedRecord = Dict[str, Any]


@dataclass(frozen=True)
class Records:
    """Zero or more normalized records, in server order"""
    records: Tuple[NormalizedRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


@dataclass(frozen=True)
class Scalar:
    """Standalone scalar result, e.g. a deleted-row count"""
    value: Union[int, float, str]


@dataclass(frozen=True)
class Boolean:
    """Standalone boolean result, e.g. a ping acknowledgement"""
    value: bool


NormalizedResult = Union[Records, Scalar, Boolean]
