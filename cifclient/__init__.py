"""
CIF v3 API client

Authenticated, rate-limit aware access to a threat intel sharing API with
normalization of its loosely typed responses.
"""
from cifclient.client import CIFClient
from cifclient.config import ClientConfig, load_config, save_config
from cifclient.connectors.cif_connector import CIFConnector
from cifclient.connectors.transport import CIFTransport
from cifclient.models import APIRequest, Boolean, HTTPMethod, Records, Scalar
from cifclient.normalization import ResponseNormalizer, normalize_response

__version__ = "1.0.0"

__all__ = [
    'APIRequest',
    'Boolean',
    'CIFClient',
    'CIFConnector',
    'CIFTransport',
    'ClientConfig',
    'HTTPMethod',
    'Records',
    'ResponseNormalizer',
    'Scalar',
    'load_config',
    'normalize_response',
    'save_config',
]
