#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""Module containing the TLS client credential used to authenticate with APNs."""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from hashlib import sha1
from logging import getLogger
from pathlib import Path
from ssl import SSLContext
from tempfile import NamedTemporaryFile
from typing import TYPE_CHECKING, Final, Self

from cryptography.x509 import Certificate, load_der_x509_certificate

from ._util.crypto import PrivateKey, PublicCertificate, der_encoded, der_to_pem, pem_encoded_key

if TYPE_CHECKING:
    from collections.abc import Iterable

ALPN_PROTOCOL: Final = ("h2",)

logger = getLogger(__name__)


def fingerprint(credential: Credential) -> bytes:
    """
    Compute the identity key of a credential.

    The key is the SHA-1 digest of every DER certificate in the chain, concatenated in order.

    >>> fingerprint(Credential()).hex()
    'da39a3ee5e6b4b0d3255bfef95601890afd80709'
    """
    return sha1(b"".join(credential.certificate_chain), usedforsecurity=False).digest()


@dataclass(frozen=True)
class Credential:
    """A TLS client certificate chain, and its private key, identifying a provider to APNs."""

    certificate_chain: tuple[bytes, ...] = ()
    """DER-encoded certificates, leaf first."""

    private_key: bytes | None = field(default=None, repr=False)
    """PEM-encoded private key matching the leaf certificate."""

    @classmethod
    def from_certificates(
        cls: type[Self],
        certificates: PublicCertificate | bytes | str | Iterable[PublicCertificate | bytes | str],
        private_key: PrivateKey | bytes | str | None = None,
    ) -> Self:
        """
        Build a credential from `cryptography` objects or already-encoded certificates.

        :param certificates: The leaf certificate, or the whole chain with the leaf first.
        :param private_key: The private key of the leaf certificate.
        """
        if hasattr(certificates, "public_bytes") or isinstance(certificates, (bytes, str)):
            certificates = [certificates]

        return cls(
            certificate_chain=tuple(der_encoded(certificate) for certificate in certificates),
            private_key=None if private_key is None else pem_encoded_key(private_key),
        )

    @property
    def fingerprint(self: Self) -> bytes:
        """The identity key of this credential."""
        return fingerprint(self)

    @property
    def leaf(self: Self) -> Certificate | None:
        """The decoded leaf certificate, if the chain is not empty."""
        if not self.certificate_chain:
            return None

        return load_der_x509_certificate(self.certificate_chain[0])

    def create_ssl_context(self: Self) -> SSLContext:
        """Create an SSL context presenting this credential as the TLS client certificate."""
        if not self.certificate_chain or self.private_key is None:
            msg = "Both a certificate chain and a private key must be provided."
            raise ValueError(msg)

        ssl_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        ssl_context.set_alpn_protocols(ALPN_PROTOCOL)

        # `load_cert_chain` only reads from the filesystem.
        with NamedTemporaryFile(suffix=".pem", delete=False) as cert_file:
            cert_file.write(b"".join(der_to_pem(der) for der in self.certificate_chain))
            cert_file.write(self.private_key)

        try:
            ssl_context.load_cert_chain(certfile=cert_file.name)
        finally:
            Path(cert_file.name).unlink(missing_ok=True)

        logger.debug(f"Created SSL context for credential {self.fingerprint.hex()}")

        return ssl_context
