"""
Shared pytest fixtures and configuration for rec-spine tests.

This module provides:
- Identifier fixtures (one recording in all three encodings)
- Metadata and archive-record builders
- In-memory and SQLite archive stores
- Settings cache isolation

Usage:
    Fixtures are auto-discovered by pytest; request them as arguments.
"""

import base64
import random
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from recspine.core.enums import FileType
from recspine.core.models import (
    ArchiveRecord,
    FileEntry,
    NameResolution,
    RecordingIdentifier,
    RecordingMetadata,
)
from recspine.core.settings import clear_settings_cache
from recspine.storage.memory import InMemoryArchive

# One recording instance identifier in all three encodings.
COMPACT_ID = "hKx8dCgYQhmvEjyH2m1Dqw=="
HEX_ID = "84ac7c7428184219af123c87da6d43ab"
DASHED_ID = "84ac7c74-2818-4219-af12-3c87da6d43ab"

START = datetime(2025, 3, 4, 17, 0, tzinfo=UTC)
MIB = 1024 * 1024


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings so env overrides in one test never leak."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Builders
# =============================================================================


def random_compact_ids(count: int, seed: int = 1337) -> list[str]:
    """Seeded random 128-bit values in compact form."""
    rng = random.Random(seed)
    return [base64.b64encode(rng.randbytes(16)).decode("ascii") for _ in range(count)]


def make_metadata(**overrides: Any) -> RecordingMetadata:
    """A complete, ordinary coaching session observation."""
    values: dict[str, Any] = {
        "identifier": RecordingIdentifier(COMPACT_ID),
        "external_meeting_id": "81234567890",
        "topic": "Weekly Coaching - Alex",
        "start_time": START,
        "duration_seconds": 3600,
        "aggregate_file_size_bytes": 200 * MIB,
        "participant_count": 2,
        "host_identity": "coach.jane@domain",
        "files": [
            FileEntry(FileType.VIDEO, 180 * MIB),
            FileEntry(FileType.AUDIO, 20 * MIB),
            FileEntry(FileType.TRANSCRIPT, 40_000),
        ],
    }
    values.update(overrides)
    return RecordingMetadata(**values)


def make_record(**overrides: Any) -> ArchiveRecord:
    values: dict[str, Any] = {
        "record_id": "rec-1",
        "identifier": COMPACT_ID,
        "fingerprint": None,
        "external_meeting_id": "81234567890",
        "topic": "Weekly Coaching - Alex",
        "start_time": START,
    }
    values.update(overrides)
    return ArchiveRecord(**values)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def resolved_names() -> NameResolution:
    return NameResolution(coach="Jane", student="Alex", confidence=0.9, method="roster")


@pytest.fixture
def memory_archive() -> InMemoryArchive:
    return InMemoryArchive()


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine shared across threads."""
    from recspine.storage.orm import create_archive_engine

    engine = create_archive_engine("sqlite://")
    yield engine
    engine.dispose()
