import argparse
import logging
import sys

from iasverify.attestation import AttestationError, get_ias_root_ca, verify_identity_binding, verify_report
from iasverify.attestation.report import extract_quote
from iasverify.config import AttestationConfig


def main():
    parser = argparse.ArgumentParser(description="Verify an SGX quote with the Intel Attestation Service")
    parser.add_argument('quote',
                       help='Base64 quote, or @path to read it from a file')
    parser.add_argument('-a', '--address',
                       help='Expected 20-byte signing address (hex) in the report data')
    parser.add_argument('--pin-root', action='store_true',
                       help='Require the embedded Intel IAS root CA')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(
        format='%(message)s',
        level=logging.DEBUG if args.verbose else logging.INFO
    )

    quote = args.quote
    if quote.startswith('@'):
        with open(quote[1:]) as f:
            quote = f.read().strip()

    try:
        config = AttestationConfig.from_env()
    except ValueError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        logging.info(f"Submitting quote to {config.endpoint}")
        response = config.make_client().submit(quote, config.api_key)

        trusted_ca = get_ias_root_ca() if args.pin_root else None
        verified = verify_report(response.material, trusted_ca=trusted_ca)
        logging.info(f"Report {response.report.id}: status {response.report.isv_enclave_quote_status}")
        if not verified:
            logging.error("Report signature or certificate chain did not verify")
            sys.exit(1)

        decoded = extract_quote(response.report)
        print(decoded)

        if args.address:
            verify_identity_binding(decoded, bytes.fromhex(args.address.removeprefix('0x')))
            logging.info("Signing address matches report data")

        logging.info("Verification successful!")
    except (AttestationError, ValueError) as e:
        logging.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
