"""
Unit tests for IAS response unwrapping (envelope.py).
"""

import base64
import json
from urllib.parse import quote as percent_encode

import pytest
from requests.structures import CaseInsensitiveDict

from iasverify.attestation.envelope import unwrap_response
from iasverify.attestation.types import (
    EnvelopeError,
    MalformedCertificateChainError,
    MalformedReportError,
    MalformedSignatureError,
    MissingHeaderError,
    VerificationMaterial,
)
from iasverify.attestation.verify import verify_report

CERT_HEADER = "X-IASReport-Signing-Certificate"
SIG_HEADER = "X-IASReport-Signature"


class TestUnwrapResponse:
    """Test splitting a 2xx response into report and material."""

    def test_unwraps_report_and_material(self, pki, report_body, report_fields):
        response = unwrap_response(pki.headers(report_body), report_body)

        assert response.report.id == report_fields["id"]
        assert response.report.version == 3
        assert response.material.certificate_pem == pki.leaf_pem
        assert response.material.ca_pem == pki.ca_pem
        assert response.material.signature == pki.sign(report_body)
        assert response.material.report_bytes == report_body

    def test_unwrapped_material_verifies(self, pki, report_body):
        response = unwrap_response(pki.headers(report_body), report_body)
        assert verify_report(response.material) is True

    def test_report_bytes_kept_verbatim(self, pki, report_fields):
        """Whitespace and key order in the body survive untouched."""
        body = ('{ "version" : 3,\n  ' + json.dumps(report_fields)[1:] + '\n').encode()
        response = unwrap_response(pki.headers(body), body)

        assert response.material.report_bytes == body
        assert response.material.report_string == body.decode()
        assert verify_report(response.material) is True

    def test_report_string_tolerates_invalid_utf8(self, pki):
        body = b'{"id": "\xff"}'
        material = VerificationMaterial(
            ca_pem=pki.ca_pem,
            certificate_pem=pki.leaf_pem,
            signature=pki.sign(body),
            report_bytes=body,
        )

        assert material.report_string == '{"id": "\ufffd"}'
        assert verify_report(material) is True

    def test_str_body(self, pki, report_body):
        response = unwrap_response(pki.headers(report_body), report_body.decode())
        assert response.material.report_bytes == report_body

    def test_header_lookup_is_case_insensitive(self, pki, report_body):
        headers = {name.lower(): value for name, value in pki.headers(report_body).items()}
        response = unwrap_response(headers, report_body)
        assert response.material.report_bytes == report_body

    def test_requests_header_map(self, pki, report_body):
        headers = CaseInsensitiveDict(pki.headers(report_body))
        response = unwrap_response(headers, report_body)
        assert response.report.isv_enclave_quote_status == "GROUP_OUT_OF_DATE"

    def test_extra_certificates_tolerated(self, pki, other_pki, report_body):
        headers = pki.headers(report_body)
        headers[CERT_HEADER] = percent_encode(pki.leaf_pem + pki.ca_pem + other_pki.ca_pem)

        response = unwrap_response(headers, report_body)
        assert response.material.ca_pem == pki.ca_pem

    def test_unencoded_newlines_tolerated(self, pki, report_body):
        headers = pki.headers(report_body)
        headers[CERT_HEADER] = percent_encode(pki.leaf_pem + pki.ca_pem, safe="\n/+=-")

        response = unwrap_response(headers, report_body)
        assert response.material.certificate_pem == pki.leaf_pem


class TestMissingHeaders:
    """A 2xx without its signature material is an error, never a crash."""

    def test_missing_signature_header(self, pki, report_body):
        headers = pki.headers(report_body)
        del headers[SIG_HEADER]

        with pytest.raises(MissingHeaderError) as exc_info:
            unwrap_response(headers, report_body)
        assert exc_info.value.header == SIG_HEADER

    def test_missing_certificate_header(self, pki, report_body):
        headers = pki.headers(report_body)
        del headers[CERT_HEADER]

        with pytest.raises(MissingHeaderError) as exc_info:
            unwrap_response(headers, report_body)
        assert exc_info.value.header == CERT_HEADER

    def test_empty_header_is_missing(self, pki, report_body):
        headers = pki.headers(report_body)
        headers[SIG_HEADER] = ""

        with pytest.raises(MissingHeaderError):
            unwrap_response(headers, report_body)

    def test_missing_header_checked_before_parsing(self, report_body):
        """A missing signature is reported even when the certificate header is garbage."""
        with pytest.raises(MissingHeaderError):
            unwrap_response({CERT_HEADER: "garbage"}, report_body)

    def test_no_headers(self, report_body):
        with pytest.raises(EnvelopeError):
            unwrap_response({}, report_body)


class TestMalformedHeaders:
    """Test rejection of unusable certificate and signature headers."""

    def test_single_certificate(self, pki, report_body):
        headers = pki.headers(report_body)
        headers[CERT_HEADER] = percent_encode(pki.leaf_pem)

        with pytest.raises(MalformedCertificateChainError, match="at least 2"):
            unwrap_response(headers, report_body)

    def test_garbage_certificate(self, pki, report_body):
        headers = pki.headers(report_body)
        headers[CERT_HEADER] = percent_encode("-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")

        with pytest.raises(MalformedCertificateChainError):
            unwrap_response(headers, report_body)

    def test_no_pem_at_all(self, pki, report_body):
        headers = pki.headers(report_body)
        headers[CERT_HEADER] = "not%20a%20certificate"

        with pytest.raises(MalformedCertificateChainError):
            unwrap_response(headers, report_body)

    @pytest.mark.parametrize("signature", ["not base64!", "AAA", "AAAAA"])
    def test_bad_signature_encoding(self, pki, report_body, signature):
        headers = pki.headers(report_body)
        headers[SIG_HEADER] = signature

        with pytest.raises(MalformedSignatureError):
            unwrap_response(headers, report_body)

    def test_signature_is_decoded_once(self, pki, report_body):
        headers = pki.headers(report_body)
        response = unwrap_response(headers, report_body)
        assert response.material.signature == base64.b64decode(headers[SIG_HEADER])
        assert len(response.material.signature) == 256


class TestMalformedBody:
    """Test rejection of report bodies that do not match the report shape."""

    def _unwrap(self, pki, body: bytes):
        return unwrap_response(pki.headers(body), body)

    def test_not_json(self, pki):
        with pytest.raises(MalformedReportError, match="JSON"):
            self._unwrap(pki, b"<html>Service Unavailable</html>")

    def test_not_an_object(self, pki):
        with pytest.raises(MalformedReportError, match="object"):
            self._unwrap(pki, b'["id", "timestamp"]')

    @pytest.mark.parametrize("field", [
        "id", "timestamp", "version", "isvEnclaveQuoteStatus", "isvEnclaveQuoteBody",
    ])
    def test_missing_mandatory_field(self, pki, report_fields, field):
        del report_fields[field]
        with pytest.raises(MalformedReportError, match=field):
            self._unwrap(pki, json.dumps(report_fields).encode())

    def test_intel_fixture_lacks_version(self, pki, intel_report_bytes):
        with pytest.raises(MalformedReportError, match="version"):
            self._unwrap(pki, intel_report_bytes)
