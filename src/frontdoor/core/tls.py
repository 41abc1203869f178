"""
TLS context for the listening side.

    ┌─────────────────────────────────────────────────────────────────┐
    │  PROTOCOL_TLS_SERVER      server-side negotiation               │
    │  minimum_version TLSv1_2  no SSLv3 / TLS 1.0 / TLS 1.1          │
    │  OP_CIPHER_SERVER_PREFERENCE                                    │
    │                           the server's cipher order wins over   │
    │                           the client's                          │
    │  key exchange             OpenSSL defaults (X25519, P-256)      │
    │  load_cert_chain()        certificate + private key from disk   │
    └─────────────────────────────────────────────────────────────────┘

The context is built once at startup and shared by every connection.
Loading the certificate is part of startup: a missing or unreadable
file raises here, before the server accepts anything.
"""

import logging
import ssl


logger = logging.getLogger(__name__)


def build_tls_context(cert_file: str, key_file: str) -> ssl.SSLContext:
    """
    Create the server's SSLContext.

    Raises:
        FileNotFoundError: cert_file or key_file does not exist.
        ssl.SSLError: The files are not a valid certificate/key pair.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.options |= ssl.OP_CIPHER_SERVER_PREFERENCE

    context.load_cert_chain(certfile=cert_file, keyfile=key_file)

    logger.debug(f"TLS context ready (cert={cert_file}, key={key_file})")
    return context
