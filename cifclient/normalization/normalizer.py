"""
Response Normalizer

Converts CIF API payloads to a common record shape. Handles:
- Plain object lists under "data"
- Search-engine envelopes embedded as a JSON string in "data"
- Bare scalars (affected row counts) and booleans
- Field renaming and typing through an ordered rule table
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union
import json
import logging
import re

from cifclient.exceptions import DateParseError, ShapeError
from cifclient.models.results import (
    Boolean,
    NormalizedRecord,
    NormalizedResult,
    Records,
    Scalar,
)
from cifclient.normalization.timestamps import parse_epoch, parse_timestamp

# Search results arrive as {"data": "{\"hits\":{\"hits\":[{\"_source\":...}]}}"}
ENVELOPE_PATTERN = re.compile(r'^\s*\{\s*"hits"\s*:')

# The remote encodes "no result" as a serialized empty object
EMPTY_MARKER = "{}"

DATE_FIELDS = {
    "reporttime": "ReportTime",
    "firsttime": "FirstTime",
    "lasttime": "LastTime",
    "expires": "Expires",
}


def title_case(key: str) -> str:
    """asn_desc -> AsnDesc, lastSeen -> LastSeen"""
    parts = [part for part in key.split('_') if part]
    if not parts:
        return key
    return ''.join(part[:1].upper() + part[1:] for part in parts)


def split_tags(value: Any, key: Optional[str] = None) -> set:
    """Comma-joined tag string (or list) -> set of tags"""
    if value is None:
        return set()
    if isinstance(value, (list, tuple, set, frozenset)):
        candidates = [str(tag) for tag in value]
    else:
        candidates = str(value).split(',')
    return {tag.strip() for tag in candidates if tag.strip()}


def _passthrough(value: Any, key: Optional[str] = None) -> Any:
    return value


def _upper(value: Any, key: Optional[str] = None) -> Any:
    return value.upper() if isinstance(value, str) else value


def _port(value: Any, key: Optional[str] = None) -> Any:
    return None if value == "None" else value


def _nullable(parse: Callable[[Any, str], Any]) -> Callable[[Any, str], Any]:
    """Unset dates (JSON null) stay None instead of failing to parse"""
    def transform(value: Any, key: Optional[str] = None) -> Any:
        return None if value is None else parse(value, key)
    return transform


@dataclass(frozen=True)
class FieldRule:
    """Maps a matching input key to an output name and typed value"""
    matches: Callable[[str], bool]
    output_name: Callable[[str], str]
    transform: Callable[[Any, str], Any]


def _rename(source: str, target: str, transform=_passthrough) -> FieldRule:
    return FieldRule(
        matches=lambda key: key == source,
        output_name=lambda key: target,
        transform=transform
    )


# First matching rule wins; the last rule matches everything
FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule(
        matches=lambda key: key in DATE_FIELDS,
        output_name=lambda key: DATE_FIELDS[key.lower()],
        transform=_nullable(parse_timestamp)
    ),
    _rename("last_activity_at", "LastActivityTime", _nullable(parse_epoch)),
    _rename("tags", "Tag", split_tags),
    _rename("tlp", "TLP"),
    _rename("itype", "IType"),
    _rename("groups", "Group"),
    _rename("protocol", "Protocol", _upper),
    _rename("portlist", "Port", _port),
    FieldRule(
        matches=lambda key: True,
        output_name=title_case,
        transform=_passthrough
    ),
)

NormalizedItem = Union[NormalizedRecord, Scalar, Boolean]


class ResponseNormalizer:
    """
    Normalize transport payloads to records, scalars or booleans

    Date fields are parsed best-effort by default: an unparsable value is
    kept as-is and a warning is logged. With strict_dates=True the whole
    normalization aborts with DateParseError instead.
    """

    def __init__(self, strict_dates: bool = False, rules: Tuple[FieldRule, ...] = FIELD_RULES):
        """
        Initialize normalizer

        Args:
            strict_dates: Raise on unparsable date fields instead of keeping them raw
            rules: Ordered field rules; the last one should match every key
        """
        self.strict_dates = strict_dates
        self.rules = rules
        self.logger = logging.getLogger(self.__class__.__name__)

    def normalize(self, payload: Any) -> NormalizedResult:
        """
        Convert a success payload to a tagged result

        The payload is fully processed before anything is returned, so an
        error never leaves the caller with a partial record list.

        Args:
            payload: Success payload from the transport

        Returns:
            Records for object results, Scalar or Boolean for a lone value

        Raises:
            ShapeError: Unknown payload shape, or records mixed with scalars
            DateParseError: Unparsable date field with strict_dates=True
        """
        items = list(self.iter_items(payload))

        if all(isinstance(item, dict) for item in items):
            return Records(tuple(items))

        if len(items) == 1:
            return items[0]

        raise ShapeError(
            f"Response mixes {len(items)} records and scalar values"
        )

    def iter_items(self, payload: Any) -> Iterator[NormalizedItem]:
        """
        Lazily yield one normalized item per result element, in server order

        Calling this again on the same payload yields the same items.
        """
        for element in self._unwrap(payload):
            item = self._classify(element)
            if item is not None:
                yield item

    def _unwrap(self, payload: Any) -> List[Any]:
        """Locate the collection of result elements inside a payload"""
        if not isinstance(payload, dict):
            return payload if isinstance(payload, list) else [payload]

        if 'data' in payload:
            data = payload['data']
            if isinstance(data, str) and ENVELOPE_PATTERN.match(data):
                return self._unwrap_envelope(data)
            return data if isinstance(data, list) else [data]

        if payload.get('message') == 'success':
            return []

        raise ShapeError("Unexpected response shape: no 'data' field and no success message")

    def _unwrap_envelope(self, data: str) -> List[Any]:
        """Pull hits.hits[]._source out of an embedded search result"""
        try:
            envelope = json.loads(data)
        except ValueError as e:
            raise ShapeError(f"Embedded search result is not valid JSON: {e}") from e

        try:
            hits = envelope['hits']['hits']
        except (KeyError, TypeError) as e:
            raise ShapeError("Embedded search result has no hits.hits list") from e

        if not isinstance(hits, list):
            raise ShapeError("Embedded search result has no hits.hits list")

        sources = []
        for hit in hits:
            if not isinstance(hit, dict) or '_source' not in hit:
                raise ShapeError("Embedded search hit has no _source")
            sources.append(hit['_source'])

        self.logger.debug(f"Unwrapped {len(sources)} search hits")
        return sources

    def _classify(self, element: Any) -> Union[NormalizedItem, None]:
        """Turn one element into a record, scalar or boolean; None means skip"""
        if element is None:
            return None

        if isinstance(element, str) and element.strip() == EMPTY_MARKER:
            return None

        if isinstance(element, dict):
            return self._normalize_record(element) if element else None

        # bool is a subclass of int, test it first
        if isinstance(element, bool):
            return Boolean(element)

        if isinstance(element, (str, int)):
            try:
                return Scalar(int(element))
            except ValueError:
                return Scalar(element)

        if isinstance(element, float):
            return Scalar(element)

        raise ShapeError(f"Unsupported response element: {type(element).__name__}")

    def _match_rule(self, key: str) -> FieldRule:
        for rule in self.rules:
            if rule.matches(key):
                return rule
        raise ShapeError(f"No field rule matches '{key}'")

    def _normalize_record(self, element: Dict[str, Any]) -> NormalizedRecord:
        """Apply the field rules to every key present in a result object"""
        record: NormalizedRecord = {}

        for key, value in element.items():
            lookup = key.lower()
            rule = self._match_rule(lookup)
            name = rule.output_name(key)

            try:
                record[name] = rule.transform(value, lookup)
            except DateParseError as e:
                if self.strict_dates:
                    self.logger.error(f"Aborting normalization: {e}")
                    raise
                self.logger.warning(f"{e}; keeping raw value")
                record[name] = value

        return record


def normalize_response(payload: Any, strict_dates: bool = False) -> NormalizedResult:
    """
    Normalize a single payload with the default field rules

    Args:
        payload: Success payload from the transport
        strict_dates: Abort on unparsable date fields

    Returns:
        Tagged normalized result
    """
    return ResponseNormalizer(strict_dates=strict_dates).normalize(payload)
