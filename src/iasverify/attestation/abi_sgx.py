"""
SGX EPID quote structures as returned in an IAS attestation report.

The isvEnclaveQuoteBody field of a report carries exactly two fixed-size
records back to back: the 48-byte quote body followed by the 384-byte
enclave report body. Fields are consumed sequentially in wire order; the
order below is part of the contract with the attestation service.
"""

import base64
from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

from .types import (
    QuoteEncodingError,
    QuoteLengthError,
    QuoteTrailingDataError,
    SIGNING_ADDRESS_SIZE,
)

# =============================================================================
# Constants
# =============================================================================

QUOTE_BODY_SIZE = 0x30  # 48 bytes
REPORT_BODY_SIZE = 0x180  # 384 bytes
QUOTE_SIZE = QUOTE_BODY_SIZE + REPORT_BODY_SIZE  # 432 bytes

MR_ENCLAVE_SIZE = 0x20  # 32 bytes
MR_SIGNER_SIZE = 0x20  # 32 bytes
REPORT_DATA_SIZE = 0x40  # 64 bytes

# (field, width) in wire order
QUOTE_BODY_LAYOUT: List[Tuple[str, int]] = [
    ("version", 2),
    ("signature_type", 2),
    ("gid", 4),
    ("isv_svn_qe", 2),
    ("isv_svn_pce", 2),
    ("reserved", 4),
    ("base_name", 32),
]

REPORT_BODY_LAYOUT: List[Tuple[str, int]] = [
    ("cpu_svn", 16),
    ("misc_select", 4),
    ("reserved1", 28),
    ("attributes", 16),
    ("mr_enclave", MR_ENCLAVE_SIZE),
    ("reserved2", 32),
    ("mr_signer", MR_SIGNER_SIZE),
    ("reserved3", 96),
    ("isv_prod_id", 2),
    ("isv_svn", 2),
    ("reserved4", 60),
    ("report_data", REPORT_DATA_SIZE),
]


# =============================================================================
# Data Structures
# =============================================================================

@dataclass(frozen=True)
class QuoteBody:
    """
    EPID quote body (48 bytes).

    Quote metadata: version, signature type, EPID group and the SVNs of
    the quoting and provisioning certification enclaves.
    """
    version: bytes  # 2 bytes
    signature_type: bytes  # 2 bytes - linkable / unlinkable
    gid: bytes  # 4 bytes - EPID group id
    isv_svn_qe: bytes  # 2 bytes
    isv_svn_pce: bytes  # 2 bytes
    reserved: bytes  # 4 bytes
    base_name: bytes  # 32 bytes

    def __str__(self) -> str:
        return (
            f"QuoteBody(version={self.version.hex()}, "
            f"signature_type={self.signature_type.hex()}, "
            f"gid={self.gid.hex()})"
        )

    def to_bytes(self) -> bytes:
        return _serialize(self, QUOTE_BODY_LAYOUT)


@dataclass(frozen=True)
class QuoteReportBody:
    """
    Enclave report body (384 bytes).

    Contains the enclave measurement, its signer and the 64 bytes of report
    data chosen by the enclave. The first 20 bytes of report data carry the
    enclave's signing address.
    """
    cpu_svn: bytes  # 16 bytes
    misc_select: bytes  # 4 bytes
    reserved1: bytes  # 28 bytes
    attributes: bytes  # 16 bytes
    mr_enclave: bytes  # 32 bytes - enclave code measurement
    reserved2: bytes  # 32 bytes
    mr_signer: bytes  # 32 bytes - enclave signer measurement
    reserved3: bytes  # 96 bytes
    isv_prod_id: bytes  # 2 bytes
    isv_svn: bytes  # 2 bytes
    reserved4: bytes  # 60 bytes
    report_data: bytes  # 64 bytes

    def __str__(self) -> str:
        return (
            f"QuoteReportBody(\n"
            f"  mr_enclave={self.mr_enclave.hex()},\n"
            f"  mr_signer={self.mr_signer.hex()},\n"
            f"  isv_prod_id={self.isv_prod_id.hex()},\n"
            f"  isv_svn={self.isv_svn.hex()},\n"
            f"  report_data={self.report_data.hex()}\n"
            f")"
        )

    def to_bytes(self) -> bytes:
        return _serialize(self, REPORT_BODY_LAYOUT)


@dataclass(frozen=True)
class Quote:
    """Decoded isvEnclaveQuoteBody: quote body followed by report body."""
    body: QuoteBody
    report_body: QuoteReportBody

    def __str__(self) -> str:
        return (
            f"Quote(\n"
            f"  body={self.body},\n"
            f"  report_body={self.report_body}\n"
            f")"
        )

    def to_bytes(self) -> bytes:
        return self.body.to_bytes() + self.report_body.to_bytes()

    def signing_address(self) -> bytes:
        """Return the 20-byte identity value bound into the report data."""
        return self.report_body.report_data[:SIGNING_ADDRESS_SIZE]


# =============================================================================
# Parsing Functions
# =============================================================================

def _read_fields(data: bytes, offset: int, layout: List[Tuple[str, int]]) -> Tuple[Dict[str, bytes], int]:
    """
    Consume the fields of a layout from data starting at offset.

    Returns:
        Tuple of (field values by name, offset after the last field)

    Raises:
        QuoteLengthError: If data ends before a field is complete
    """
    values = {}
    for name, size in layout:
        end = offset + size
        if end > len(data):
            raise QuoteLengthError(
                f"Quote too short: field {name} needs bytes {offset}..{end}, "
                f"but only {len(data)} bytes available (expected {QUOTE_SIZE})"
            )
        values[name] = bytes(data[offset:end])
        offset = end
    return values, offset


def _serialize(record, layout: List[Tuple[str, int]]) -> bytes:
    parts = []
    for name, size in layout:
        value = getattr(record, name)
        if len(value) != size:
            raise ValueError(f"{type(record).__name__}.{name} must be {size} bytes, got {len(value)}")
        parts.append(value)
    return b"".join(parts)


def parse_quote(data: bytes) -> Quote:
    """
    Parse the raw 432-byte quote body of an attestation report.

    Args:
        data: Raw bytes (base64-decoded isvEnclaveQuoteBody)

    Returns:
        Parsed Quote

    Raises:
        QuoteLengthError: If fewer than 432 bytes are supplied
        QuoteTrailingDataError: If more than 432 bytes are supplied
    """
    body_fields, offset = _read_fields(data, 0, QUOTE_BODY_LAYOUT)
    report_fields, offset = _read_fields(data, offset, REPORT_BODY_LAYOUT)

    if len(data) != offset:
        raise QuoteTrailingDataError(
            f"Quote has {len(data) - offset} trailing bytes after the "
            f"{QUOTE_SIZE}-byte quote and report bodies"
        )

    return Quote(
        body=QuoteBody(**body_fields),
        report_body=QuoteReportBody(**report_fields),
    )


def decode_quote(encoded_quote: Union[str, bytes]) -> Quote:
    """
    Decode a base64 quote body into its two fixed-size records.

    Raises:
        QuoteEncodingError: If the input is not valid base64
        QuoteLengthError: If the decoded quote is too short
        QuoteTrailingDataError: If the decoded quote is too long
    """
    try:
        raw = base64.b64decode(encoded_quote, validate=True)
    except ValueError as e:
        raise QuoteEncodingError(f"Quote is not valid base64: {e}") from e

    return parse_quote(raw)


def encode_quote(quote: Quote) -> str:
    """Base64-encode a quote back into the isvEnclaveQuoteBody format."""
    return base64.b64encode(quote.to_bytes()).decode("ascii")

