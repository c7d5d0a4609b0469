"""
portal - Resilient client layer for the Portal API.

- ndjson.py: Response body decoding
- transport.py: Single-attempt HTTP transport with deadlines
- classifier.py: Error classification and remediation rules
- client.py: Retrying client
- registry.py: Dataset registry with TTL cache
- chain.py: Chain classification
- service.py: Facade wiring guards, registry and client (import directly)
"""

from portal.classifier import RemediationRule, classify, register_rule
from portal.client import Fatal, Ok, Retryable, RetryingClient, backoff_delay
from portal.ndjson import decode_body, decode_ndjson
from portal.registry import DatasetRegistry
from portal.transport import PortalTransport, RawOutcome

__all__ = [
    "DatasetRegistry",
    "Fatal",
    "Ok",
    "PortalTransport",
    "RawOutcome",
    "RemediationRule",
    "Retryable",
    "RetryingClient",
    "backoff_delay",
    "classify",
    "decode_body",
    "decode_ndjson",
    "register_rule",
]
