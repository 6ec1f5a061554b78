"""
High-level client: transport followed by normalization
"""
import logging
from typing import Any, Dict, Optional, Union

from cifclient.config import ClientConfig
from cifclient.connectors.transport import CIFTransport
from cifclient.models.request import APIRequest, HTTPMethod
from cifclient.models.results import NormalizedResult
from cifclient.normalization.normalizer import ResponseNormalizer


class CIFClient:
    """
    Runs API calls and returns normalized results

    In raw mode the transport payload is returned untouched and the
    normalizer is skipped.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[CIFTransport] = None,
        normalizer: Optional[ResponseNormalizer] = None
    ):
        self.config = config
        self.transport = transport or CIFTransport(config)
        self.normalizer = normalizer or ResponseNormalizer()
        self.logger = logging.getLogger(self.__class__.__name__)

    def build_request(
        self,
        method: HTTPMethod,
        path: str,
        body: Optional[Dict[str, Any]] = None
    ) -> APIRequest:
        """Request for path with token, proxy and verbosity taken from config"""
        return APIRequest(
            method=method,
            uri=path,
            token=self.config.token,
            body=body or None,
            proxy=self.config.proxy,
            verbose=self.config.verbose
        )

    def call(self, request: APIRequest, raw: Optional[bool] = None) -> Union[NormalizedResult, Any]:
        """
        Send a request and normalize the answer

        Args:
            request: Fully built request
            raw: Return the unmodified payload. Defaults to config.raw

        Returns:
            Tagged result, or the raw payload in raw mode

        Raises:
            CIFError: Any transport or normalization failure
        """
        if raw is None:
            raw = self.config.raw

        payload = self.transport.send(request)

        if raw:
            self.logger.debug(f"Returning raw payload for {request.method.value} {request.uri}")
            return payload

        return self.normalizer.normalize(payload)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
