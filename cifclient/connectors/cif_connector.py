"""
CIF v3 endpoint connector

Builds request parameters for the /ping, /indicators, /feed and /tokens
endpoints and hands them to CIFClient. One page per call.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Union
import logging

from cifclient.client import CIFClient
from cifclient.exceptions import PreconditionError
from cifclient.models.request import HTTPMethod
from cifclient.normalization.timestamps import format_timestamp


def _join(value: Union[str, Iterable[str], None]) -> Optional[str]:
    """Lists are sent comma-joined"""
    if value is None or isinstance(value, str):
        return value
    return ','.join(str(v) for v in value)


def _build_filters(**kwargs) -> Dict[str, Any]:
    """Drop unset parameters and serialize lists and datetimes

    False is kept; pass None for flags that should not be sent.
    """
    filters = {}
    for key, value in kwargs.items():
        if value is None or value == '':
            continue
        if isinstance(value, datetime):
            value = format_timestamp(value)
        elif isinstance(value, (list, tuple, set)):
            value = _join(value)
        filters[key] = value
    return filters


class CIFConnector:
    """
    Endpoint-level operations against a CIF v3 remote

    Every method returns what CIFClient.call returns: a tagged normalized
    result, or the raw payload when raw mode is on.
    """

    def __init__(self, client: CIFClient):
        """
        Initialize connector

        Args:
            client: Configured client used for every call
        """
        self.client = client
        self.logger = logging.getLogger(self.__class__.__name__)

    def _call(self, method: HTTPMethod, path: str, body: Optional[Dict[str, Any]] = None,
              raw: Optional[bool] = None):
        request = self.client.build_request(method, path, body)
        return self.client.call(request, raw=raw)

    def ping(self, raw: Optional[bool] = None):
        """Check that the remote is reachable and the token is accepted"""
        self.logger.info("Pinging remote")
        return self._call(HTTPMethod.GET, "/ping", raw=raw)

    def search_indicators(
        self,
        indicator: Optional[str] = None,
        itype: Optional[str] = None,
        tags: Union[str, Iterable[str], None] = None,
        confidence: Optional[float] = None,
        provider: Optional[str] = None,
        limit: Optional[int] = None,
        reporttime: Optional[datetime] = None,
        no_feed: bool = False,
        raw: Optional[bool] = None
    ):
        """
        Search indicators

        Args:
            indicator: Observable to look up (domain, IP, hash, URL)
            itype: Indicator type filter
            tags: Tag or tags to match
            confidence: Minimum confidence
            provider: Reporting provider
            limit: Maximum results in the page
            reporttime: Only indicators reported after this time
            no_feed: Ask the remote not to apply feed filtering

        Returns:
            Normalized search results
        """
        filters = _build_filters(
            indicator=indicator,
            itype=itype,
            tags=tags,
            confidence=confidence,
            provider=provider,
            limit=limit,
            reporttime=reporttime,
            nofeed=no_feed or None
        )

        self.logger.info(f"Searching indicators (filters={filters})")
        return self._call(HTTPMethod.GET, "/indicators", filters, raw=raw)

    def submit_indicator(
        self,
        indicator: str,
        group: Union[str, Iterable[str]] = "everyone",
        tlp: str = "amber",
        tags: Union[str, Iterable[str], None] = None,
        confidence: Optional[float] = None,
        provider: Optional[str] = None,
        description: Optional[str] = None,
        raw: Optional[bool] = None,
        **extra
    ):
        """
        Submit one indicator

        Args:
            indicator: Observable to submit
            group: Sharing group(s)
            tlp: Traffic Light Protocol label
            tags: Tag or tags
            confidence: Confidence score
            provider: Provider name
            description: Free-text description
            extra: Additional indicator fields sent as-is

        Raises:
            PreconditionError: If indicator, group or tlp is empty
        """
        if not indicator:
            raise PreconditionError("An indicator value is required")
        if not group:
            raise PreconditionError("At least one group is required")
        if not tlp:
            raise PreconditionError("A TLP label is required")

        body = _build_filters(
            indicator=indicator,
            group=group,
            tlp=tlp,
            tags=tags,
            confidence=confidence,
            provider=provider,
            description=description,
            **extra
        )

        self.logger.info(f"Submitting indicator {indicator}")
        return self._call(HTTPMethod.POST, "/indicators", body, raw=raw)

    def delete_indicators(self, raw: Optional[bool] = None, **filters):
        """
        Delete indicators matching filters

        Raises:
            PreconditionError: If no filter is given
        """
        body = _build_filters(**filters)
        if not body:
            raise PreconditionError("Refusing to delete indicators without a filter")

        self.logger.info(f"Deleting indicators (filters={body})")
        return self._call(HTTPMethod.DELETE, "/indicators", body, raw=raw)

    def get_feed(
        self,
        itype: str,
        confidence: Optional[float] = None,
        tags: Union[str, Iterable[str], None] = None,
        provider: Optional[str] = None,
        limit: Optional[int] = None,
        raw: Optional[bool] = None
    ):
        """
        Fetch an aggregated, allowlist-filtered feed

        Raises:
            PreconditionError: If itype is empty
        """
        if not itype:
            raise PreconditionError("A feed requires an indicator type")

        filters = _build_filters(
            itype=itype,
            confidence=confidence,
            tags=tags,
            provider=provider,
            limit=limit
        )

        self.logger.info(f"Fetching {itype} feed")
        return self._call(HTTPMethod.GET, "/feed", filters, raw=raw)

    def list_tokens(self, username: Optional[str] = None, raw: Optional[bool] = None):
        """List tokens, optionally for one user"""
        return self._call(HTTPMethod.GET, "/tokens", _build_filters(username=username), raw=raw)

    def create_token(
        self,
        username: str,
        groups: Union[str, Iterable[str], None] = None,
        read: bool = True,
        write: bool = False,
        admin: bool = False,
        expires: Optional[datetime] = None,
        raw: Optional[bool] = None
    ):
        """
        Create a token for a user

        Raises:
            PreconditionError: If username is empty
        """
        if not username:
            raise PreconditionError("A username is required to create a token")

        body = _build_filters(
            username=username,
            groups=groups or "everyone",
            read=read,
            write=write,
            admin=admin,
            expires=expires
        )

        self.logger.info(f"Creating token for {username}")
        return self._call(HTTPMethod.POST, "/tokens", body, raw=raw)

    def delete_token(
        self,
        username: Optional[str] = None,
        token: Optional[str] = None,
        raw: Optional[bool] = None
    ):
        """
        Delete tokens by username or token value

        Raises:
            PreconditionError: If neither is given
        """
        body = _build_filters(username=username, token=token)
        if not body:
            raise PreconditionError("A username or token is required to delete a token")

        return self._call(HTTPMethod.DELETE, "/tokens", body, raw=raw)

    def update_token(self, token: str, groups: Union[str, Iterable[str]], raw: Optional[bool] = None):
        """
        Replace the groups of a token

        Raises:
            PreconditionError: If token or groups is empty
        """
        if not token or not groups:
            raise PreconditionError("A token and at least one group are required")

        body = _build_filters(token=token, groups=groups)
        return self._call(HTTPMethod.PATCH, "/tokens", body, raw=raw)
