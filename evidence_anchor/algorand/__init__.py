"""
Algorand backend for evidence anchoring.

Public API:

    Pure layer (no I/O):
        - Key derivation: ``derive()``, ``SigningIdentity``, ``InvalidPhrase``,
          ``phrase_from_seed()``, ``generate_phrase()``.
        - Encodings: addresses and transaction IDs.
        - Transaction builder: ``plan_payment_to_self``, ``sign_transaction``.

    Protocols (for dependency injection):
        - ``LedgerClient`` — network boundary (parameters, submit, confirm).
        - ``AlgodTransport`` — injectable HTTP transport.

    Result types:
        - ``NetworkParameters``, ``ParamsResult``, ``SubmitResult``,
          ``ConfirmationResult``.

    Error mapping:
        - ``classify_http_status()``, ``classify_connection_error()``,
          ``classify_timeout()``.

    Concrete client:
        - ``AlgodClient`` — algod v2 REST implementation of LedgerClient.
        - ``HttpxTransport`` — default httpx-based transport.

The adapter (``evidence_anchor.algorand.adapter``) composes these with
attestation records and is imported directly.
"""

from evidence_anchor.algorand.algod_client import AlgodClient
from evidence_anchor.algorand.client import (
    ConfirmationResult,
    LedgerClient,
    NetworkParameters,
    ParamsResult,
    SubmitResult,
)
from evidence_anchor.algorand.encoding import (
    ADDRESS_LEN,
    TX_ID_LEN,
    decode_address,
    encode_address,
    is_valid_address,
)
from evidence_anchor.algorand.errors import (
    classify_connection_error,
    classify_http_status,
    classify_timeout,
)
from evidence_anchor.algorand.mnemonic import (
    PHRASE_WORDS,
    InvalidPhrase,
    SigningIdentity,
    derive,
    generate_phrase,
    phrase_from_seed,
)
from evidence_anchor.algorand.transport import (
    AlgodTransport,
    HttpxTransport,
    TransportResponse,
)
from evidence_anchor.algorand.tx import (
    MAX_NOTE_BYTES,
    SignedTransaction,
    decode_signed_transaction,
    plan_payment_to_self,
    sign_transaction,
)

__all__ = [
    "ADDRESS_LEN",
    "MAX_NOTE_BYTES",
    "PHRASE_WORDS",
    "TX_ID_LEN",
    "AlgodClient",
    "AlgodTransport",
    "ConfirmationResult",
    "HttpxTransport",
    "InvalidPhrase",
    "LedgerClient",
    "NetworkParameters",
    "ParamsResult",
    "SignedTransaction",
    "SigningIdentity",
    "SubmitResult",
    "TransportResponse",
    "classify_connection_error",
    "classify_http_status",
    "classify_timeout",
    "decode_address",
    "decode_signed_transaction",
    "derive",
    "encode_address",
    "generate_phrase",
    "is_valid_address",
    "phrase_from_seed",
    "plan_payment_to_self",
    "sign_transaction",
]
