"""
Shared types, errors, and protocol constants for IAS attestation.

This module is the canonical source for types used across the quote codec,
the response unwrapper and the report verifier. It has no intra-package
dependencies, so any module can import from it without risk of circular
imports.
"""

from dataclasses import dataclass


# =============================================================================
# Protocol-level constants
# =============================================================================

# Intel Attestation Service (IAS) v4 report endpoints
IAS_DEV_REPORT_URL = "https://api.trustedservices.intel.com/sgx/dev/attestation/v4/report"
IAS_PROD_REPORT_URL = "https://api.trustedservices.intel.com/sgx/attestation/v4/report"

# Request envelope
API_KEY_HEADER = "Ocp-Apim-Subscription-Key"
QUOTE_REQUEST_FIELD = "isvEnclaveQuote"

# Response headers carrying the detached signature material
SIGNING_CERT_HEADER = "X-IASReport-Signing-Certificate"
SIGNATURE_HEADER = "X-IASReport-Signature"

DEFAULT_RETRIES = 10
DEFAULT_TIMEOUT = 30.0  # seconds, per attempt

SIGNING_ADDRESS_SIZE = 20  # leading bytes of report_data


# =============================================================================
# Errors
# =============================================================================

class AttestationError(Exception):
    """Base class for attestation errors"""
    pass


class DecodeError(AttestationError):
    """Raised when a quote cannot be decoded"""
    pass

class QuoteEncodingError(DecodeError):
    """Raised when the quote is not valid base64"""
    pass

class QuoteLengthError(DecodeError):
    """Raised when the quote is shorter than the fixed layout"""
    pass

class QuoteTrailingDataError(DecodeError):
    """Raised when bytes remain after the fixed layout"""
    pass


class ClientError(AttestationError):
    """Raised when the attestation service could not be reached successfully"""
    pass

class TransportError(ClientError):
    """Raised on connection failures and timeouts"""
    pass

class HttpStatusError(ClientError):
    """Raised when the attestation service answers with a non-2xx status"""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        message = f"Attestation service returned HTTP {status_code}"
        if reason:
            message += f" {reason}"
        super().__init__(message)


class EnvelopeError(AttestationError):
    """Raised when a 2xx response cannot be safely interpreted"""
    pass

class MissingHeaderError(EnvelopeError):
    """Raised when a required response header is absent"""

    def __init__(self, header: str):
        self.header = header
        super().__init__(f"Attestation response missing {header} header")

class MalformedCertificateChainError(EnvelopeError):
    """Raised when the signing certificate header is not a usable PEM chain"""
    pass

class MalformedSignatureError(EnvelopeError):
    """Raised when the signature header is not valid base64"""
    pass

class MalformedReportError(EnvelopeError):
    """Raised when the response body is not a well-formed attestation report"""
    pass


class VerifyError(AttestationError):
    """Raised when verification cannot be evaluated at all"""
    pass


class UntrustedReportError(AttestationError):
    """Raised when a report failed the chain or signature check"""
    pass

class IdentityMismatchError(AttestationError):
    """Raised when the quote's report data does not carry the expected identity"""
    pass


# =============================================================================
# Data types
# =============================================================================

@dataclass(frozen=True)
class VerificationMaterial:
    """
    Everything needed to check a report's authenticity.

    report_bytes is the response body exactly as received. The signature
    covers these bytes, so they must never be rebuilt from the parsed report.
    """
    ca_pem: str  # Issuing CA certificate
    certificate_pem: str  # Leaf report signing certificate
    signature: bytes  # Detached RSA signature
    report_bytes: bytes

    @property
    def report_string(self) -> str:
        """The report as text for logs and audit; undecodable bytes become U+FFFD."""
        return self.report_bytes.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a report verification and the material that produced it"""
    verified: bool
    material: VerificationMaterial

    def __bool__(self) -> bool:
        return self.verified
