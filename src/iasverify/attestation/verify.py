"""
Verification of IAS attestation reports.

A report is trusted when the signing certificate was issued by the CA that
accompanied it and the detached signature checks out over the exact report
bytes. Both checks run on every call; nothing is cached.
"""

from datetime import datetime
import hmac
from typing import Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .abi_sgx import Quote
from .cert_utils import (
    CertificateChainError,
    is_directly_issued_by,
    is_valid_at,
    load_pem_certificate,
    public_key_der,
)
from .types import (
    IdentityMismatchError,
    SIGNING_ADDRESS_SIZE,
    VerificationMaterial,
    VerificationResult,
    VerifyError,
)


def _load(pem: str, role: str) -> x509.Certificate:
    try:
        return load_pem_certificate(pem)
    except CertificateChainError as e:
        raise VerifyError(f"{role} certificate is not valid PEM: {e}") from e


def _check_chain(ca: x509.Certificate, cert: x509.Certificate) -> bool:
    try:
        return is_directly_issued_by(cert, ca)
    except TypeError as e:
        raise VerifyError(f"Unsupported CA key type: {e}") from e


def _check_signature(public_key: rsa.RSAPublicKey, signature: bytes, report_bytes: bytes) -> bool:
    try:
        public_key.verify(signature, report_bytes, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        return False
    return True


def verify_report(
    material: VerificationMaterial,
    trusted_ca: Optional[x509.Certificate] = None,
    at: Optional[datetime] = None,
) -> bool:
    """
    Check that a report was signed by a certificate issued by its CA.

    Args:
        material: CA and signing certificates, signature and report bytes
        trusted_ca: If given, the CA from the response must carry the same
            public key as this anchor
        at: If given, both certificates must be valid at this instant

    Returns:
        True if the chain and the signature both hold, False if the material
        is well-formed but untrusted

    Raises:
        VerifyError: If a certificate cannot be parsed, the signing key is not
            RSA, or the signature is empty or of the wrong length
    """
    ca = _load(material.ca_pem, "CA")
    cert = _load(material.certificate_pem, "Signing")

    public_key = cert.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise VerifyError(
            f"Signing certificate must carry an RSA key, got {type(public_key).__name__}"
        )

    if not material.signature:
        raise VerifyError("Report signature is empty")
    expected_size = (public_key.key_size + 7) // 8
    if len(material.signature) != expected_size:
        raise VerifyError(
            f"Report signature must be {expected_size} bytes, got {len(material.signature)}"
        )

    if trusted_ca is not None and public_key_der(ca) != public_key_der(trusted_ca):
        return False

    if not _check_chain(ca, cert):
        return False

    if at is not None and not (is_valid_at(ca, at) and is_valid_at(cert, at)):
        return False

    return _check_signature(public_key, material.signature, material.report_bytes)


def verification_result(material: VerificationMaterial, **kwargs) -> VerificationResult:
    """Run verify_report and keep the material alongside the outcome."""
    return VerificationResult(verified=verify_report(material, **kwargs), material=material)


def verify_identity_binding(quote: Quote, expected_address: bytes) -> None:
    """
    Check the quote's report data starts with the expected signing address.

    Raises:
        ValueError: If expected_address is not 20 bytes
        IdentityMismatchError: If the report data carries a different value
    """
    if len(expected_address) != SIGNING_ADDRESS_SIZE:
        raise ValueError(
            f"Expected address must be {SIGNING_ADDRESS_SIZE} bytes, got {len(expected_address)}"
        )

    actual = quote.signing_address()
    if not hmac.compare_digest(actual, bytes(expected_address)):
        raise IdentityMismatchError(
            f"Quote report data is bound to {actual.hex()}, expected {bytes(expected_address).hex()}"
        )
