"""Content-addressed recording fingerprints.

The platform may issue a fresh instance identifier each time the same
scheduled meeting is re-recorded or re-exported. The fingerprint, a digest of
``(external_meeting_id, start_timestamp)`` only, is the key that stays stable
across those rotations. Topic edits, file sizes and participant counts never
affect it.
"""

from __future__ import annotations

from datetime import datetime

from recspine.core.errors import InvalidFingerprintInputError
from recspine.core.hashing import FINGERPRINT_LENGTH, compute_hash
from recspine.core.models import RecordingMetadata
from recspine.core.timestamps import normalize_timestamp


class FingerprintGenerator:
    """Derives the secondary dedup key for a recording."""

    def __init__(self, length: int = FINGERPRINT_LENGTH):
        self.length = length

    def fingerprint(self, external_meeting_id: str | int, start_timestamp: str | datetime) -> str:
        """
        Digest of the meeting id and its normalized UTC start time.

        Raises:
            InvalidFingerprintInputError: Blank meeting id or a start time
                that is not ISO-8601
        """
        meeting_id = str(external_meeting_id).strip() if external_meeting_id is not None else ""
        if not meeting_id:
            raise InvalidFingerprintInputError("external meeting id is required")

        try:
            start = normalize_timestamp(start_timestamp)
        except (TypeError, ValueError) as e:
            raise InvalidFingerprintInputError(
                f"Unparseable start timestamp {start_timestamp!r}", cause=e
            ).with_context(operation="fingerprint")

        return compute_hash(meeting_id, start, length=self.length)

    def fingerprint_metadata(self, metadata: RecordingMetadata) -> str | None:
        """Fingerprint an observation, or None when it lacks the inputs."""
        meeting_id = (metadata.external_meeting_id or "").strip()
        if not meeting_id or metadata.start_time is None:
            return None
        return self.fingerprint(meeting_id, metadata.start_time)
