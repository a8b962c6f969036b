#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel

from __future__ import annotations

import re
from base64 import b64decode
from typing import TYPE_CHECKING, Protocol

from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509 import load_der_x509_certificate

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.serialization import KeySerializationEncryption

PEM_EXPRESSION = re.compile(r"""-----(BEGIN|END) ([A-Z]+ ?)+-----""")


class PrivateKey(Protocol):
    def private_bytes(
        self: PrivateKey,
        encoding: Encoding,
        format: PrivateFormat,  # noqa: A002
        encryption_algorithm: KeySerializationEncryption,
    ) -> bytes: ...


class PublicCertificate(Protocol):
    def public_bytes(
        self: PublicCertificate,
        encoding: Encoding,
    ) -> bytes: ...


def der_encoded(certificate: PublicCertificate | bytes | str) -> bytes:
    """
    Convert a certificate to its DER representation.

    :param certificate: A `cryptography` certificate, a DER byte-string, or a (byte-)string in PEM format.
    :return: The DER representation of the certificate.

    >>> der_encoded(b"\\x30\\x03\\x02\\x01\\x00")
    b'0\\x03\\x02\\x01\\x00'
    """
    if hasattr(certificate, "public_bytes"):
        return certificate.public_bytes(Encoding.DER)

    if isinstance(certificate, bytes):
        if not certificate.lstrip().startswith(b"-----"):
            return certificate

        certificate = certificate.decode()

    if isinstance(certificate, str):
        return b64decode(PEM_EXPRESSION.sub("", certificate).strip().replace("\n", ""))

    msg = f"Expected a supported certificate, got {type(certificate)}."
    raise TypeError(msg)


def pem_encoded_key(private_key: PrivateKey | bytes | str) -> bytes:
    """
    Convert a private key to an unencrypted PKCS#8 PEM.

    :param private_key: A `cryptography` private key, or a (byte-)string already in PEM format.
    :return: The PEM representation of the key.
    """
    if hasattr(private_key, "private_bytes"):
        return private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())

    if isinstance(private_key, bytes):
        return private_key

    if isinstance(private_key, str):
        return private_key.encode()

    msg = f"Expected a supported private key, got {type(private_key)}."
    raise TypeError(msg)


def der_to_pem(der: bytes) -> bytes:
    """Re-encode a DER certificate as PEM."""
    return load_der_x509_certificate(der).public_bytes(Encoding.PEM)
