"""
Algod error mapping — translates network outcomes to FailureCode.

Keeps the mapping coarse and conservative:

    - No usable HTTP answer before the node accepted the transaction
      (DNS, TLS, refused, socket timeout, undecodable response, any other
      client exception): NETWORK_UNAVAILABLE. Safe to restart the submit
      step.
    - HTTP 5xx: NETWORK_UNAVAILABLE. The node is unhealthy; the request
      was not processed.
    - HTTP 4xx: REJECTED. The node looked at the request and refused it
      (overspend, bad fee, expired round range, malformed). Resubmitting
      the same payload will not help.
    - Anything short of an observed confirmation once the transaction was
      accepted: TIMEOUT. The transaction may still land.
"""

from __future__ import annotations

from evidence_anchor.result import FailureCode


def classify_http_status(status_code: int | None) -> FailureCode:
    """Map an HTTP status of a failed algod response to a FailureCode.

    Args:
        status_code: HTTP status. None means the response had no usable
            status (e.g. a 2xx with a malformed body).

    Returns:
        NETWORK_UNAVAILABLE for 5xx, REJECTED for everything else.
    """
    if status_code is not None and status_code >= 500:
        return FailureCode.NETWORK_UNAVAILABLE
    return FailureCode.REJECTED


def classify_connection_error() -> FailureCode:
    """Classify a client exception raised before the node accepted the txn.

    Returns:
        Always NETWORK_UNAVAILABLE — the node gave no usable answer.
    """
    return FailureCode.NETWORK_UNAVAILABLE


def classify_timeout() -> FailureCode:
    """Classify an unobserved confirmation.

    Returns:
        Always TIMEOUT.
    """
    return FailureCode.TIMEOUT
