"""
Environment-driven configuration for the attestation client.
"""

from dataclasses import dataclass
import math
import os
from typing import Mapping, Optional

from .attestation.types import API_KEY_HEADER, DEFAULT_RETRIES, DEFAULT_TIMEOUT, IAS_DEV_REPORT_URL
from .client import AttestationClient

API_KEY_ENV = "IAS_SGX_PRIMARY_KEY"
ENDPOINT_ENV = "IAS_ENDPOINT"
RETRIES_ENV = "IAS_RETRIES"
TIMEOUT_ENV = "IAS_TIMEOUT"
API_KEY_HEADER_ENV = "IAS_API_KEY_HEADER"


@dataclass
class AttestationConfig:
    """Settings for talking to IAS"""
    api_key: str
    endpoint: str = IAS_DEV_REPORT_URL
    retries: int = DEFAULT_RETRIES
    timeout: float = DEFAULT_TIMEOUT
    api_key_header: str = API_KEY_HEADER

    def __repr__(self) -> str:
        return (
            f"AttestationConfig(endpoint={self.endpoint!r}, retries={self.retries}, "
            f"timeout={self.timeout}, api_key_header={self.api_key_header!r})"
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AttestationConfig":
        """
        Build a config from environment variables.

        IAS_SGX_PRIMARY_KEY is required; IAS_ENDPOINT, IAS_RETRIES,
        IAS_TIMEOUT and IAS_API_KEY_HEADER override the defaults.

        Raises:
            ValueError: If the key is missing, a number cannot be parsed or
                the timeout is not a positive finite number
        """
        if environ is None:
            environ = os.environ

        api_key = environ.get(API_KEY_ENV)
        if not api_key:
            raise ValueError(f"{API_KEY_ENV} must be set")

        retries = DEFAULT_RETRIES
        if environ.get(RETRIES_ENV):
            try:
                retries = int(environ[RETRIES_ENV])
            except ValueError as e:
                raise ValueError(f"{RETRIES_ENV} must be an integer: {environ[RETRIES_ENV]!r}") from e

        timeout = DEFAULT_TIMEOUT
        if environ.get(TIMEOUT_ENV):
            try:
                timeout = float(environ[TIMEOUT_ENV])
            except ValueError as e:
                raise ValueError(f"{TIMEOUT_ENV} must be a number: {environ[TIMEOUT_ENV]!r}") from e
            if not math.isfinite(timeout) or timeout <= 0:
                raise ValueError(f"{TIMEOUT_ENV} must be a positive number: {environ[TIMEOUT_ENV]!r}")

        return cls(
            api_key=api_key,
            endpoint=environ.get(ENDPOINT_ENV) or IAS_DEV_REPORT_URL,
            retries=retries,
            timeout=timeout,
            api_key_header=environ.get(API_KEY_HEADER_ENV) or API_KEY_HEADER,
        )

    def make_client(self) -> AttestationClient:
        return AttestationClient(
            endpoint=self.endpoint,
            retries=self.retries,
            timeout=self.timeout,
            api_key_header=self.api_key_header,
        )
