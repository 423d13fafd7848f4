"""
Shared certificate utilities for IAS report verification.

This module provides the PEM chain parsing and issuer checks used by both
envelope.py (reading the signing certificate header) and verify.py
(checking the chain of trust).
"""

from datetime import datetime, timezone
from typing import List

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization


class CertificateChainError(Exception):
    """Raised when a PEM certificate chain cannot be parsed."""
    pass


def parse_pem_chain(pem_data: bytes) -> List[x509.Certificate]:
    """
    Parse concatenated PEM certificates.

    Leading/trailing whitespace and null bytes around the bundle are ignored.

    Args:
        pem_data: PEM-encoded certificate chain (bytes)

    Returns:
        List of parsed certificates in order

    Raises:
        CertificateChainError: If parsing fails or no certificate is found
    """
    stripped = pem_data.strip(b'\x00\n\r\t ')
    if not stripped:
        raise CertificateChainError("Certificate chain is empty")

    try:
        return x509.load_pem_x509_certificates(stripped)
    except ValueError as e:
        raise CertificateChainError(f"Failed to parse PEM certificate: {e}") from e


def load_pem_certificate(pem: str) -> x509.Certificate:
    """
    Parse a single PEM certificate.

    Raises:
        CertificateChainError: If the PEM data is not a certificate
    """
    try:
        return x509.load_pem_x509_certificate(pem.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as e:
        raise CertificateChainError(f"Failed to parse PEM certificate: {e}") from e


def cert_to_pem(cert: x509.Certificate) -> str:
    """Convert a certificate to a PEM string."""
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


def public_key_der(cert: x509.Certificate) -> bytes:
    """Return the certificate's SubjectPublicKeyInfo in DER form."""
    return cert.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def is_directly_issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    """
    Check that issuer's subject names cert's issuer and issuer's key signed cert.

    Returns False for a name mismatch or a bad signature. An issuer key type
    the library cannot verify with raises TypeError.
    """
    try:
        cert.verify_directly_issued_by(issuer)
    except (ValueError, InvalidSignature):
        return False
    return True


def is_valid_at(cert: x509.Certificate, at: datetime) -> bool:
    """Check the certificate's validity period contains the given instant."""
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    return cert.not_valid_before_utc <= at <= cert.not_valid_after_utc
