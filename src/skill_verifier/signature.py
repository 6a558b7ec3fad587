"""
Body signature verification.

The platform signs the SHA-1 digest of the raw request body with RSA
PKCS#1 v1.5. SHA-1 is part of the wire protocol and must not be swapped.
"""

from __future__ import annotations

import base64
import binascii
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import KeyTypeError, SignatureDecodeError, SignatureMismatchError

logger = logging.getLogger(__name__)


def decode_signature(token: str) -> bytes:
    """
    Decode the base64 ``Signature`` header value.

    Raises:
        SignatureDecodeError: If the token is empty or not valid base64
    """
    try:
        signature = base64.b64decode(token.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureDecodeError(f"`Signature` header is not valid base64: {e}") from e
    if not signature:
        raise SignatureDecodeError("`Signature` header is empty")
    return signature


def verify_body_signature(public_key, body: bytes, token: str) -> None:
    """
    Verify that ``token`` is the platform's signature over ``body``.

    Args:
        public_key: Public key of the validated signing certificate
        body: Exact raw request body bytes
        token: Base64 value of the ``Signature`` header

    Raises:
        SignatureDecodeError: Malformed signature token
        KeyTypeError: Certificate key is not RSA
        SignatureMismatchError: Signature does not match the body
    """
    signature = decode_signature(token)
    logger.debug("Signature value: %s", token)

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyTypeError(
            f"Certificate public key is {type(public_key).__name__}, expected RSA"
        )

    logger.info("Verifying hash...")
    try:
        public_key.verify(signature, body, padding.PKCS1v15(), hashes.SHA1())
    except InvalidSignature as e:
        raise SignatureMismatchError(
            "Asserted hash value from `Signature` header does not match "
            "derived hash value from the request body"
        ) from e
