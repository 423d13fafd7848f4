import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import requests
from cryptography import x509

from .attestation.abi_sgx import Quote
from .attestation.envelope import AttestationResponse, unwrap_response
from .attestation.report import AttestationReport, extract_quote
from .attestation.types import (
    API_KEY_HEADER,
    ClientError,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    HttpStatusError,
    IAS_DEV_REPORT_URL,
    QUOTE_REQUEST_FIELD,
    TransportError,
    UntrustedReportError,
)
from .attestation.verify import verify_identity_binding, verify_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteAttestation:
    """What a caller needs to decide whether to trust an enclave"""
    report: AttestationReport
    verified: bool
    quote: Optional[Quote]  # None unless verified


class AttestationClient:
    """Submits quotes to the Intel Attestation Service"""

    def __init__(
        self,
        endpoint: str = IAS_DEV_REPORT_URL,
        retries: int = DEFAULT_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
        api_key_header: str = API_KEY_HEADER,
    ):
        if not endpoint:
            raise ValueError("Attestation endpoint must not be empty")
        if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
            raise ValueError(f"retries must be a non-negative integer, got {retries!r}")
        if (
            isinstance(timeout, bool)
            or not isinstance(timeout, (int, float))
            or not math.isfinite(timeout)
            or timeout <= 0
        ):
            raise ValueError(f"timeout must be positive, got {timeout!r}")

        self.endpoint = endpoint
        self.retries = retries
        self.timeout = timeout
        self.api_key_header = api_key_header

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def _attempt(self, quote: str, api_key: str) -> AttestationResponse:
        headers = {
            "Content-Type": "application/json",
            self.api_key_header: api_key,
        }

        try:
            response = requests.post(
                self.endpoint,
                json={QUOTE_REQUEST_FIELD: quote},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Failed to reach attestation service: {e}") from e

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(response.status_code, response.reason or "")

        # response.content is the signed payload; never use response.json() here
        return unwrap_response(response.headers, response.content)

    def submit(self, quote: str, api_key: str) -> AttestationResponse:
        """
        Submit a quote and unwrap the signed report.

        Transport failures and non-2xx answers are retried up to the
        configured budget with no delay between attempts. A 2xx response that
        cannot be unwrapped is not retried.

        Args:
            quote: Base64 quote as produced by the enclave
            api_key: IAS subscription key

        Returns:
            AttestationResponse with the parsed report and verification material

        Raises:
            ClientError: The last failure, once every attempt has failed
            EnvelopeError: If a 2xx response is missing or has malformed
                signature material
        """
        failures: List[ClientError] = []

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self._attempt(quote, api_key)
            except ClientError as e:
                failures.append(e)
                logger.warning(
                    f"Attestation request failed (attempt {attempt}/{self.max_attempts}): {e}"
                )
                continue

            logger.debug(f"Attestation report received on attempt {attempt}")
            return response

        logger.error(f"Attestation request failed after {len(failures)} attempts")
        raise failures[-1]


def verify_remote_attestation(
    quote: str,
    api_key: str,
    endpoint: str = IAS_DEV_REPORT_URL,
    retries: int = DEFAULT_RETRIES,
    timeout: float = DEFAULT_TIMEOUT,
    trusted_ca: Optional[x509.Certificate] = None,
    api_key_header: str = API_KEY_HEADER,
) -> RemoteAttestation:
    """
    Submit a quote, verify the signed report and decode the quote inside it.

    The embedded quote is only decoded once the report has verified; an
    untrusted report comes back with `verified` False and `quote` None.
    """
    client = AttestationClient(
        endpoint=endpoint,
        retries=retries,
        timeout=timeout,
        api_key_header=api_key_header,
    )
    response = client.submit(quote, api_key)

    if not verify_report(response.material, trusted_ca=trusted_ca):
        logger.warning(f"Attestation report {response.report.id} failed verification")
        return RemoteAttestation(report=response.report, verified=False, quote=None)

    return RemoteAttestation(
        report=response.report,
        verified=True,
        quote=extract_quote(response.report),
    )


class EnclaveSource(ABC):
    """
    An enclave that can be attested.

    Implementations wrap whatever produces the hardware quote and knows the
    enclave's signing address.
    """

    @abstractmethod
    def produce_quote(self) -> str:
        """Return a fresh base64 quote from the enclave."""
        pass

    @abstractmethod
    def get_signing_address(self) -> bytes:
        """Return the 20-byte address the enclave binds into its report data."""
        pass


def attest_enclave(
    enclave: EnclaveSource,
    client: AttestationClient,
    api_key: str,
    trusted_ca: Optional[x509.Certificate] = None,
) -> RemoteAttestation:
    """
    Attest an enclave end to end and bind it to its signing address.

    Args:
        enclave: Source of the quote and the expected signing address
        client: Configured attestation client
        api_key: IAS subscription key
        trusted_ca: Optional pinned CA for the report signing chain

    Returns:
        RemoteAttestation with verified set to True

    Raises:
        UntrustedReportError: If the report's chain or signature does not hold
        IdentityMismatchError: If the quote is bound to a different address
    """
    quote = enclave.produce_quote()
    response = client.submit(quote, api_key)

    if not verify_report(response.material, trusted_ca=trusted_ca):
        raise UntrustedReportError(f"Attestation report {response.report.id} failed verification")

    decoded = extract_quote(response.report)
    verify_identity_binding(decoded, enclave.get_signing_address())

    logger.info(f"Enclave attested: mr_enclave={decoded.report_body.mr_enclave.hex()}")
    return RemoteAttestation(report=response.report, verified=True, quote=decoded)
