from .abi_sgx import (
    Quote,
    QuoteBody,
    QuoteReportBody,
    QUOTE_SIZE,
    decode_quote,
    encode_quote,
    parse_quote,
)
from .envelope import AttestationResponse, unwrap_response
from .intel_ias_ca import get_ias_root_ca
from .report import AttestationReport, QuoteStatus, extract_quote, parse_report
from .types import (
    AttestationError,
    ClientError,
    DecodeError,
    EnvelopeError,
    HttpStatusError,
    IdentityMismatchError,
    MalformedCertificateChainError,
    MalformedReportError,
    MalformedSignatureError,
    MissingHeaderError,
    QuoteEncodingError,
    QuoteLengthError,
    QuoteTrailingDataError,
    TransportError,
    UntrustedReportError,
    VerificationMaterial,
    VerificationResult,
    VerifyError,
)
from .verify import verification_result, verify_identity_binding, verify_report

__all__ = [
    'Quote',
    'QuoteBody',
    'QuoteReportBody',
    'QUOTE_SIZE',
    'decode_quote',
    'encode_quote',
    'parse_quote',
    'AttestationResponse',
    'unwrap_response',
    'get_ias_root_ca',
    'AttestationReport',
    'QuoteStatus',
    'extract_quote',
    'parse_report',
    'AttestationError',
    'ClientError',
    'DecodeError',
    'EnvelopeError',
    'HttpStatusError',
    'IdentityMismatchError',
    'MalformedCertificateChainError',
    'MalformedReportError',
    'MalformedSignatureError',
    'MissingHeaderError',
    'QuoteEncodingError',
    'QuoteLengthError',
    'QuoteTrailingDataError',
    'TransportError',
    'UntrustedReportError',
    'VerificationMaterial',
    'VerificationResult',
    'VerifyError',
    'verification_result',
    'verify_identity_binding',
    'verify_report',
]
