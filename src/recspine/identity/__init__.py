"""Identifier canonicalization and fingerprinting."""

from recspine.identity.codec import IDENTIFIER_BYTES, IdentityCodec
from recspine.identity.fingerprint import FingerprintGenerator

__all__ = ["IDENTIFIER_BYTES", "IdentityCodec", "FingerprintGenerator"]
