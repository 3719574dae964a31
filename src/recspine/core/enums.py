"""
Closed tag sets shared across rec-spine.

Every branch that switches on one of these enums matches all members, so
adding an encoding, category or status is a visible change at each switch.

STDLIB ONLY - NO PYDANTIC.
"""

from enum import Enum


class IdentifierEncoding(str, Enum):
    """
    Textual encodings of a recording's 128-bit instance identifier.

    COMPACT is what the ingestion platform emits today (standard base64 of
    the 16 raw bytes). The two hex forms appear in older archive rows.
    """

    COMPACT = "compact"
    LEGACY_HEX = "legacy-hex"
    LEGACY_HEX_DASHED = "legacy-hex-dashed"
    UNKNOWN = "unknown"


class Category(str, Enum):
    """Operational bucket assigned to a recording per processing attempt."""

    COACHING = "Coaching"
    GAME_PLAN = "GamePlan"
    SAT = "SAT"
    MISC = "MISC"
    TRIVIAL = "Trivial"


class DecisionOutcome(str, Enum):
    """Outcome of the duplicate gate for one observation."""

    PROCEED_NEW = "proceed-new"
    SKIP_DUPLICATE = "skip-duplicate"
    PROCEED_OVERRIDE = "proceed-override"


class MatchMethod(str, Enum):
    """How a prior archive record was located."""

    COMPACT = "compact"
    LEGACY_HEX = "legacy-hex"
    LEGACY_HEX_DASHED = "legacy-hex-dashed"
    FINGERPRINT = "fingerprint"
    EXTERNAL_MEETING_ID = "external-meeting-id"
    TOPIC_AND_DATE = "topic-and-date"
    NONE = "none"


class MatchStatus(str, Enum):
    """Reconciliation verdict for one source recording."""

    MATCHED = "Matched"
    MISSING_IN_ARCHIVE = "MissingInArchive"
    PARTIAL_FILES = "PartialFiles"
    AMBIGUOUS_MATCH = "AmbiguousMatch"


class FileType(str, Enum):
    """Recording file types declared by the platform manifest."""

    VIDEO = "video"
    AUDIO = "audio"
    TRANSCRIPT = "transcript"
    CHAT = "chat"
    TIMELINE = "timeline"
    CAPTIONS = "captions"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "str | FileType") -> "FileType":
        """Map platform file-type labels onto FileType.

        Accepts enum values and the platform's upper-case labels
        (``MP4``, ``M4A``, ``TRANSCRIPT``, ``CHAT``, ``TIMELINE``, ``CC``).
        Unrecognized labels become OTHER.
        """
        if isinstance(value, FileType):
            return value
        key = value.strip().lower()
        return _FILE_TYPE_ALIASES.get(key, cls.OTHER)


_FILE_TYPE_ALIASES: dict[str, FileType] = {
    "video": FileType.VIDEO,
    "mp4": FileType.VIDEO,
    "shared_screen_with_speaker_view": FileType.VIDEO,
    "audio": FileType.AUDIO,
    "m4a": FileType.AUDIO,
    "audio_only": FileType.AUDIO,
    "transcript": FileType.TRANSCRIPT,
    "vtt": FileType.TRANSCRIPT,
    "audio_transcript": FileType.TRANSCRIPT,
    "chat": FileType.CHAT,
    "chat_file": FileType.CHAT,
    "txt": FileType.CHAT,
    "timeline": FileType.TIMELINE,
    "json": FileType.TIMELINE,
    "captions": FileType.CAPTIONS,
    "cc": FileType.CAPTIONS,
    "closed_caption": FileType.CAPTIONS,
}


class LookupFailurePolicy(str, Enum):
    """What the duplicate gate does when the lookup cannot be consulted."""

    FAIL_CLOSED = "fail-closed"
    FAIL_OPEN = "fail-open"


class ArchiveBackend(str, Enum):
    """Where processed-recording rows live."""

    MEMORY = "memory"
    SQL = "sql"
