"""Generate the self-signed certificate pair used for local runs.

    python -m https_edge.certs [--out-dir DIR] [--host NAME ...] [--days N]

Writes ``cert.pem`` and ``key.pem`` (PEM, unencrypted key) into the
directory the default configuration reads from.
"""
from __future__ import annotations

import argparse
import datetime
import ipaddress
import os
from pathlib import Path
from typing import Iterable, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from .config import DEFAULT_CERT_DIR

DEFAULT_HOSTS = ("localhost", "127.0.0.1", "::1")


def _subject_alt_names(hosts: Iterable[str]) -> list[x509.GeneralName]:
    names: list[x509.GeneralName] = []
    for host in hosts:
        try:
            names.append(x509.IPAddress(ipaddress.ip_address(host)))
        except ValueError:
            names.append(x509.DNSName(host))
    return names


def generate_self_signed(
    cert_file: Path,
    key_file: Path,
    hosts: Iterable[str] = DEFAULT_HOSTS,
    days: int = 365,
) -> Tuple[Path, Path]:
    hosts = list(hosts)
    if not hosts:
        raise ValueError("at least one host name is required")

    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hosts[0])])
    now = datetime.datetime.now(datetime.timezone.utc)
    public_key = key.public_key()
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=days))
        .add_extension(x509.SubjectAlternativeName(_subject_alt_names(hosts)), critical=False)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)
        .add_extension(x509.AuthorityKeyIdentifier.from_issuer_public_key(public_key), critical=False)
        .sign(key, hashes.SHA256())
    )

    cert_file = Path(cert_file)
    key_file = Path(key_file)
    cert_file.parent.mkdir(parents=True, exist_ok=True)
    key_file.parent.mkdir(parents=True, exist_ok=True)

    cert_file.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_file.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )
    )
    os.chmod(key_file, 0o600)
    return cert_file, key_file


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Generate a self-signed certificate for https-edge")
    p.add_argument("--out-dir", type=Path, default=DEFAULT_CERT_DIR)
    p.add_argument("--host", action="append", dest="hosts", help="SAN entry; repeatable (default: localhost, 127.0.0.1, ::1)")
    p.add_argument("--days", type=int, default=365)
    args = p.parse_args(argv)

    cert_file, key_file = generate_self_signed(
        args.out_dir / "cert.pem",
        args.out_dir / "key.pem",
        hosts=args.hosts or DEFAULT_HOSTS,
        days=args.days,
    )
    print(f"Wrote {cert_file} and {key_file}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
