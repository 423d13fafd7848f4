"""
Unwrapping of IAS report responses.

A successful IAS response spreads the signed report over three places:

- the body: the JSON report, signed byte-for-byte as sent
- X-IASReport-Signing-Certificate: URL-encoded PEM bundle, signing
  certificate first and the Intel CA second
- X-IASReport-Signature: base64 RSA-SHA256 signature over the body

The body is captured as raw bytes before it is parsed, and those bytes are
what the signature is later checked against.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import List, Mapping
from urllib.parse import unquote

from cryptography import x509
from requests.structures import CaseInsensitiveDict

from .cert_utils import CertificateChainError, cert_to_pem, parse_pem_chain
from .report import AttestationReport, parse_report
from .types import (
    MalformedCertificateChainError,
    MalformedSignatureError,
    MissingHeaderError,
    SIGNATURE_HEADER,
    SIGNING_CERT_HEADER,
    VerificationMaterial,
)


@dataclass(frozen=True)
class AttestationResponse:
    """A parsed report together with the material needed to verify it."""
    report: AttestationReport
    material: VerificationMaterial


def _get_header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if not value:
        raise MissingHeaderError(name)
    return value


def _parse_signing_cert_header(header_value: str) -> List[x509.Certificate]:
    """
    Parse the signing certificate chain from the response header.

    Args:
        header_value: URL-encoded PEM certificate chain

    Returns:
        List of parsed certificates (signing cert first, CA second)

    Raises:
        MalformedCertificateChainError: If parsing fails or fewer than two
            certificates are present
    """
    pem_data = unquote(header_value).encode("utf-8")

    try:
        certs = parse_pem_chain(pem_data)
    except CertificateChainError as e:
        raise MalformedCertificateChainError(f"{SIGNING_CERT_HEADER}: {e}") from e

    if len(certs) < 2:
        raise MalformedCertificateChainError(
            f"{SIGNING_CERT_HEADER} should contain at least 2 certificates, got {len(certs)}"
        )

    return certs


def _parse_signature_header(header_value: str) -> bytes:
    try:
        return base64.b64decode(header_value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedSignatureError(f"{SIGNATURE_HEADER} is not valid base64: {e}") from e


def unwrap_response(headers: Mapping[str, str], body: bytes) -> AttestationResponse:
    """
    Split a 2xx IAS response into the report and its verification material.

    Args:
        headers: Response headers (looked up case-insensitively)
        body: Raw response body, exactly as received

    Returns:
        AttestationResponse with the parsed report and verification material

    Raises:
        MissingHeaderError: If either signature header is absent or empty
        MalformedCertificateChainError: If the certificate header is unusable
        MalformedSignatureError: If the signature header is not base64
        MalformedReportError: If the body is not a well-formed report
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    headers = CaseInsensitiveDict(headers)

    cert_header = _get_header(headers, SIGNING_CERT_HEADER)
    signature_header = _get_header(headers, SIGNATURE_HEADER)

    certs = _parse_signing_cert_header(cert_header)
    signature = _parse_signature_header(signature_header)

    material = VerificationMaterial(
        ca_pem=cert_to_pem(certs[1]),
        certificate_pem=cert_to_pem(certs[0]),
        signature=signature,
        report_bytes=bytes(body),
    )

    return AttestationResponse(report=parse_report(body), material=material)
