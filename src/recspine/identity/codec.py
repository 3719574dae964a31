"""
Canonicalization of recording instance identifiers.

A recording instance is identified by a 128-bit value the platform writes in
three textual forms:

    compact            hKx8dCgYQhmvEjyH2m1Dqw==                (base64, 24 chars)
    legacy-hex         84ac7c7428184219af123c87da6d43ab        (32 hex chars)
    legacy-hex-dashed  84ac7c74-2818-4219-af12-3c87da6d43ab    (8-4-4-4-12)

The push channel and current archive rows use the compact form; historical
archive rows were written with one of the hex forms. ``IdentityCodec``
derives all three from any one of them so that every store can be searched in
whatever form it happens to hold.

Manifesto:
    - **Structure only:** The codec checks shape and length, never whether
      the recording exists
    - **Never guessed:** Anything that does not decode to exactly 16 bytes
      raises; there is no "closest valid identifier"
    - **Lossless:** Deriving from any one encoding gives byte-identical
      results for the other two

Examples:
    >>> codec = IdentityCodec()
    >>> identity = codec.canonicalize("hKx8dCgYQhmvEjyH2m1Dqw==")
    >>> identity.legacy_hex
    '84ac7c7428184219af123c87da6d43ab'
    >>> codec.canonicalize(identity.legacy_hex_dashed) == identity
    True

Tags:
    identity, codec, base64, uuid, canonicalization, rec-spine
"""

from __future__ import annotations

import base64
import binascii
import re
import string

from recspine.core.enums import IdentifierEncoding
from recspine.core.errors import IdentityError, MalformedIdentifierError, UnknownEncodingError
from recspine.core.models import CanonicalIdentity, RecordingIdentifier

IDENTIFIER_BYTES = 16

_HEX_DIGITS = frozenset(string.hexdigits)
_DASHED_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


class IdentityCodec:
    """Converts between the three identifier encodings. Stateless."""

    def infer_encoding(self, text: str) -> IdentifierEncoding:
        """
        Infer the encoding of identifier text.

        Raises:
            UnknownEncodingError: If the text fits none of the three shapes
        """
        if "+" in text or "/" in text or text.endswith("="):
            return IdentifierEncoding.COMPACT
        if len(text) == 32 and all(c in _HEX_DIGITS for c in text):
            return IdentifierEncoding.LEGACY_HEX
        if len(text) == 36 and _DASHED_PATTERN.match(text):
            return IdentifierEncoding.LEGACY_HEX_DASHED
        raise UnknownEncodingError(
            f"Identifier matches no known encoding: {text!r}"
        ).with_context(identifier=text)

    def canonicalize(
        self,
        identifier: RecordingIdentifier | str,
        encoding: IdentifierEncoding | None = None,
    ) -> CanonicalIdentity:
        """
        Derive all three encodings from one identifier.

        Args:
            identifier: Identifier text, or a RecordingIdentifier whose
                encoding tag is used when ``encoding`` is not given
            encoding: Declared encoding; None or UNKNOWN means infer

        Raises:
            UnknownEncodingError: Encoding undeclared and not inferable
            MalformedIdentifierError: Text does not decode to 16 bytes in
                the declared or inferred encoding
        """
        if isinstance(identifier, RecordingIdentifier):
            text = identifier.value
            if encoding is None:
                encoding = identifier.encoding
        else:
            text = identifier

        text = text.strip()
        if encoding is None or encoding is IdentifierEncoding.UNKNOWN:
            encoding = self.infer_encoding(text)

        raw = self.decode(text, encoding)
        return self.encode(raw)

    def try_canonicalize(
        self,
        identifier: RecordingIdentifier | str | None,
        encoding: IdentifierEncoding | None = None,
    ) -> CanonicalIdentity | None:
        """Canonicalize, returning None instead of raising for bad input."""
        if identifier is None:
            return None
        try:
            return self.canonicalize(identifier, encoding)
        except IdentityError:
            return None

    def decode(self, text: str, encoding: IdentifierEncoding) -> bytes:
        """Decode identifier text in a known encoding to its 16 raw bytes."""
        match encoding:
            case IdentifierEncoding.COMPACT:
                raw = self._decode_compact(text)
            case IdentifierEncoding.LEGACY_HEX:
                if len(text) != 32:
                    raise self._malformed(text, encoding, f"expected 32 hex chars, got {len(text)}")
                raw = self._decode_hex(text, encoding)
            case IdentifierEncoding.LEGACY_HEX_DASHED:
                if not _DASHED_PATTERN.match(text):
                    raise self._malformed(text, encoding, "expected 8-4-4-4-12 hex grouping")
                raw = self._decode_hex(text.replace("-", ""), encoding)
            case IdentifierEncoding.UNKNOWN:
                raise UnknownEncodingError(
                    "Cannot decode with UNKNOWN encoding; infer it first"
                ).with_context(identifier=text)

        if len(raw) != IDENTIFIER_BYTES:
            raise self._malformed(
                text, encoding, f"decoded to {len(raw)} bytes, expected {IDENTIFIER_BYTES}"
            )
        return raw

    def encode(self, raw: bytes) -> CanonicalIdentity:
        """Build the canonical identity from 16 raw bytes."""
        if len(raw) != IDENTIFIER_BYTES:
            raise MalformedIdentifierError(
                f"Identifier must be {IDENTIFIER_BYTES} bytes, got {len(raw)}"
            )
        hex_form = raw.hex()
        dashed = "-".join(
            (hex_form[0:8], hex_form[8:12], hex_form[12:16], hex_form[16:20], hex_form[20:32])
        )
        return CanonicalIdentity(
            compact=base64.b64encode(raw).decode("ascii"),
            legacy_hex=hex_form,
            legacy_hex_dashed=dashed,
        )

    # ------------------------------------------------------------------

    def _decode_compact(self, text: str) -> bytes:
        try:
            raw = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise self._malformed(text, IdentifierEncoding.COMPACT, "invalid base64", cause=e)
        # Non-zero padding bits would decode but not round-trip.
        if base64.b64encode(raw).decode("ascii") != text:
            raise self._malformed(text, IdentifierEncoding.COMPACT, "non-canonical base64")
        return raw

    def _decode_hex(self, text: str, encoding: IdentifierEncoding) -> bytes:
        try:
            return bytes.fromhex(text)
        except ValueError as e:
            raise self._malformed(text, encoding, "invalid hex digits", cause=e)

    @staticmethod
    def _malformed(
        text: str,
        encoding: IdentifierEncoding,
        reason: str,
        cause: Exception | None = None,
    ) -> MalformedIdentifierError:
        return MalformedIdentifierError(
            f"Malformed {encoding.value} identifier {text!r}: {reason}", cause=cause
        ).with_context(identifier=text, encoding=encoding.value)
