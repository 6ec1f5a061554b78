"""
Connectors for the CIF v3 API
"""
from cifclient.connectors.transport import CIFTransport, parse_retry_after

__all__ = ['CIFTransport', 'parse_retry_after']
