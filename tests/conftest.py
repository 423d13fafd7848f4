"""
Shared fixtures: the real Intel IAS report fixture and a throwaway RSA PKI
shaped like the IAS signing chain.
"""

import base64
import datetime
import json
from pathlib import Path
from urllib.parse import quote as percent_encode

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from iasverify.attestation.intel_ias_ca import INTEL_IAS_ROOT_CA_PEM
from iasverify.attestation.types import VerificationMaterial

DATA_DIR = Path(__file__).parent / "data"


# =============================================================================
# Intel fixture (report signed by the real IAS signing certificate)
# =============================================================================

@pytest.fixture(scope="session")
def intel_report_bytes() -> bytes:
    return (DATA_DIR / "ias_report.json").read_bytes()


@pytest.fixture(scope="session")
def intel_material(intel_report_bytes) -> VerificationMaterial:
    return VerificationMaterial(
        ca_pem=INTEL_IAS_ROOT_CA_PEM.decode("ascii"),
        certificate_pem=(DATA_DIR / "ias_signing_cert.pem").read_text(),
        signature=base64.b64decode((DATA_DIR / "ias_report.sig").read_text()),
        report_bytes=intel_report_bytes,
    )


@pytest.fixture(scope="session")
def intel_quote_b64(intel_report_bytes) -> str:
    return json.loads(intel_report_bytes)["isvEnclaveQuoteBody"]


@pytest.fixture(scope="session")
def full_quote_b64() -> str:
    """A complete 1116-byte quote as the enclave produces it, signature included."""
    return (DATA_DIR / "sgx_full_quote.b64").read_text().strip()


# =============================================================================
# Generated PKI
# =============================================================================

def _name(cn: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Corporation"),
        x509.NameAttribute(NameOID.COMMON_NAME, cn),
    ])


def issue_cert(subject_cn, public_key, issuer_cn, signing_key, ca=False, not_before=None, days=365):
    """Issue a certificate for public_key signed by signing_key."""
    if not_before is None:
        not_before = datetime.datetime(2020, 1, 1, tzinfo=datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject_cn))
        .issuer_name(_name(issuer_cn))
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + datetime.timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(signing_key, hashes.SHA256())
    )


def to_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


class Pki:
    """A CA and a report signing certificate it issued."""

    def __init__(self, ca_cn="Test Report Signing CA", leaf_cn="Test Report Signing"):
        self.ca_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.ca_cert = issue_cert(ca_cn, self.ca_key.public_key(), ca_cn, self.ca_key, ca=True)
        self.leaf_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.leaf_cert = issue_cert(leaf_cn, self.leaf_key.public_key(), ca_cn, self.ca_key)

    @property
    def ca_pem(self) -> str:
        return to_pem(self.ca_cert)

    @property
    def leaf_pem(self) -> str:
        return to_pem(self.leaf_cert)

    def sign(self, data: bytes) -> bytes:
        return self.leaf_key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    def material(self, report_bytes: bytes) -> VerificationMaterial:
        return VerificationMaterial(
            ca_pem=self.ca_pem,
            certificate_pem=self.leaf_pem,
            signature=self.sign(report_bytes),
            report_bytes=report_bytes,
        )

    def headers(self, report_bytes: bytes) -> dict:
        """Response headers as IAS sends them for a signed body."""
        return {
            "X-IASReport-Signing-Certificate": percent_encode(self.leaf_pem + self.ca_pem),
            "X-IASReport-Signature": base64.b64encode(self.sign(report_bytes)).decode("ascii"),
            "Content-Type": "application/json",
        }


@pytest.fixture(scope="session")
def pki() -> Pki:
    return Pki()


@pytest.fixture(scope="session")
def other_pki() -> Pki:
    return Pki(ca_cn="Unrelated CA", leaf_cn="Unrelated Signer")


# =============================================================================
# Report bodies
# =============================================================================

@pytest.fixture
def report_fields(intel_quote_b64) -> dict:
    return {
        "id": "165171271757108173876306223827987629752",
        "timestamp": "2019-06-03T17:39:31.126219",
        "version": 3,
        "isvEnclaveQuoteStatus": "GROUP_OUT_OF_DATE",
        "platformInfoBlob": "1502006504000900000909020401800000000000000000000008000009000000020000000000000B",
        "isvEnclaveQuoteBody": intel_quote_b64,
        "advisoryURL": "https://security-center.intel.com",
        "advisoryIDs": ["INTEL-SA-00233", "INTEL-SA-00219"],
    }


@pytest.fixture
def report_body(report_fields) -> bytes:
    return json.dumps(report_fields).encode("utf-8")
