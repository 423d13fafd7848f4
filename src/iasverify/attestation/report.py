"""
IAS attestation verification report.

The report is the JSON body returned by the Intel Attestation Service for a
submitted quote. Parsing here only checks shape and types; which quote
statuses are acceptable is left to the caller.
"""

from dataclasses import dataclass
from enum import Enum
import json
from typing import Any, List, Optional, Union

from .abi_sgx import Quote, decode_quote
from .types import MalformedReportError


class QuoteStatus(str, Enum):
    """isvEnclaveQuoteStatus values from IAS API v4."""
    OK = "OK"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    GROUP_REVOKED = "GROUP_REVOKED"
    SIGNATURE_REVOKED = "SIGNATURE_REVOKED"
    KEY_REVOKED = "KEY_REVOKED"
    SIGRL_VERSION_MISMATCH = "SIGRL_VERSION_MISMATCH"
    GROUP_OUT_OF_DATE = "GROUP_OUT_OF_DATE"
    CONFIGURATION_NEEDED = "CONFIGURATION_NEEDED"
    SW_HARDENING_NEEDED = "SW_HARDENING_NEEDED"
    CONFIGURATION_AND_SW_HARDENING_NEEDED = "CONFIGURATION_AND_SW_HARDENING_NEEDED"


@dataclass(frozen=True)
class AttestationReport:
    """Attestation verification report as returned by IAS."""
    id: str
    timestamp: str
    version: int
    isv_enclave_quote_status: str
    isv_enclave_quote_body: str  # base64, 432 bytes decoded
    revocation_reason: Optional[Union[int, str]] = None
    pse_manifest_status: Optional[str] = None
    pse_manifest_hash: Optional[str] = None
    platform_info_blob: Optional[str] = None
    nonce: Optional[str] = None
    epid_pseudonym: Optional[str] = None
    advisory_ids: Optional[List[str]] = None
    advisory_url: Optional[str] = None

    @property
    def status(self) -> Optional[QuoteStatus]:
        """The quote status as a QuoteStatus, or None if IAS sent an unknown value."""
        try:
            return QuoteStatus(self.isv_enclave_quote_status)
        except ValueError:
            return None


# =============================================================================
# Parsing
# =============================================================================

def _require(data: dict, key: str, expected: type) -> Any:
    if key not in data:
        raise MalformedReportError(f"Attestation report missing '{key}'")
    value = data[key]
    # bool is an int subclass
    if not isinstance(value, expected) or isinstance(value, bool):
        raise MalformedReportError(
            f"Attestation report '{key}' must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _optional(data: dict, key: str, expected) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, expected) or isinstance(value, bool):
        raise MalformedReportError(
            f"Attestation report '{key}' has unexpected type {type(value).__name__}"
        )
    return value


def _parse_advisory_ids(data: dict) -> Optional[List[str]]:
    advisory_ids = _optional(data, "advisoryIDs", list)
    if advisory_ids is None:
        return None
    if not all(isinstance(advisory, str) for advisory in advisory_ids):
        raise MalformedReportError("Attestation report 'advisoryIDs' must be a list of strings")
    return list(advisory_ids)


def parse_report(report_bytes: bytes) -> AttestationReport:
    """
    Parse an IAS report body.

    Args:
        report_bytes: Raw response body

    Returns:
        Parsed AttestationReport

    Raises:
        MalformedReportError: If the body is not JSON or a field is missing
            or has the wrong type
    """
    try:
        data = json.loads(report_bytes)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedReportError(f"Failed to parse attestation report JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedReportError("Attestation report must be a JSON object")

    version = _require(data, "version", int)
    if version < 0:
        raise MalformedReportError(f"Attestation report 'version' must be non-negative, got {version}")

    return AttestationReport(
        id=_require(data, "id", str),
        timestamp=_require(data, "timestamp", str),
        version=version,
        isv_enclave_quote_status=_require(data, "isvEnclaveQuoteStatus", str),
        isv_enclave_quote_body=_require(data, "isvEnclaveQuoteBody", str),
        revocation_reason=_optional(data, "revocationReason", (int, str)),
        pse_manifest_status=_optional(data, "pseManifestStatus", str),
        pse_manifest_hash=_optional(data, "pseManifestHash", str),
        platform_info_blob=_optional(data, "platformInfoBlob", str),
        nonce=_optional(data, "nonce", str),
        epid_pseudonym=_optional(data, "epidPseudonym", str),
        advisory_ids=_parse_advisory_ids(data),
        advisory_url=_optional(data, "advisoryURL", str),
    )


def extract_quote(report: AttestationReport) -> Quote:
    """
    Decode the quote embedded in a report.

    Call this after the report has verified, to read the enclave
    measurement and report data.

    Raises:
        DecodeError: If isvEnclaveQuoteBody is not a valid 432-byte quote
    """
    return decode_quote(report.isv_enclave_quote_body)
