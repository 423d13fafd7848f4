from .client import (
    AttestationClient,
    EnclaveSource,
    RemoteAttestation,
    attest_enclave,
    verify_remote_attestation,
)
from .config import AttestationConfig
from .attestation import (
    AttestationError,
    AttestationReport,
    Quote,
    QuoteStatus,
    VerificationMaterial,
    decode_quote,
    extract_quote,
    verify_identity_binding,
    verify_report,
)

__all__ = [
    "AttestationClient",
    "EnclaveSource",
    "RemoteAttestation",
    "attest_enclave",
    "verify_remote_attestation",
    "AttestationConfig",
    "AttestationError",
    "AttestationReport",
    "Quote",
    "QuoteStatus",
    "VerificationMaterial",
    "decode_quote",
    "extract_quote",
    "verify_identity_binding",
    "verify_report",
]
