"""Shared test fixtures for VitalFuse tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("ENCRYPTION_KEY", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vitalfuse.core.storage.documents import InMemoryDocumentStore, StorageError  # noqa: E402
from vitalfuse.domains.biosignal.domain_logic.session_models import (  # noqa: E402
    FusedMetrics,
    ModalityTimeSeries,
    ProcessedSessionTimeSeries,
    SamplingRate,
    SessionMetadata,
)
from vitalfuse.domains.biosignal.domain_logic.subject import Lifestyle, SubjectProfile  # noqa: E402
from vitalfuse.domains.biosignal.integration.models import ModalityAnalysis  # noqa: E402

START = datetime(2025, 3, 14, 9, 0, 0, tzinfo=timezone.utc)
START_MS = int(START.timestamp() * 1000)


# ---------------------------------------------------------------------------
# Session builders
# ---------------------------------------------------------------------------

def _series(n: int, base: float, step: float = 0.5) -> list[float]:
    return [base + (i % 10) * step for i in range(n)]


def make_session(
    session_id: str = "test-session-123",
    duration: int = 60,
    *,
    with_eeg: bool = True,
    with_ppg: bool = True,
    with_acc: bool = True,
    with_fused: bool = True,
    quality_score: float = 85.0,
) -> ProcessedSessionTimeSeries:
    """Create a 1 Hz processed session with realistic channel names."""
    n = duration
    timestamps = [START_MS + i * 1000 for i in range(n)]

    eeg = ModalityTimeSeries(
        channels={
            "delta_power": _series(n, 20.0),
            "theta_power": _series(n, 15.0),
            "alpha_power": _series(n, 30.0),
            "beta_power": _series(n, 12.0),
            "gamma_power": _series(n, 4.0),
            "focus_index": _series(n, 70.0),
            "relaxation_index": _series(n, 60.0),
            "stress_index": _series(n, 35.0),
            "attention_level": _series(n, 65.0),
            "signal_quality": _series(n, 0.9, 0.005),
        },
        timestamps=list(timestamps),
    ) if with_eeg else None

    ppg = ModalityTimeSeries(
        channels={
            "heart_rate": _series(n, 68.0),
            "hrv": _series(n, 45.0),
            "lf": _series(n, 400.0, 5.0),
            "hf": _series(n, 350.0, 5.0),
            "lf_hf_ratio": _series(n, 1.1, 0.02),
            "stress_level": _series(n, 40.0),
            "oxygen_saturation": _series(n, 97.0, 0.1),
        },
        extras={"rr_intervals": [[880, 875, 890] for _ in range(3)]},
        timestamps=list(timestamps),
    ) if with_ppg else None

    acc = ModalityTimeSeries(
        channels={
            "activity_level": _series(n, 5.0),
            "postural_stability": _series(n, 0.8, 0.01),
        },
        categorical={"posture": ["SITTING"] * n},
        extras={"movement_events": [{"timestamp": START_MS, "type": "start", "intensity": 0.2}]},
        timestamps=list(timestamps),
    ) if with_acc else None

    fused = FusedMetrics(
        channels={
            "overall_stress": _series(n, 38.0),
            "wellbeing_score": _series(n, 72.0),
        },
    ) if with_fused else None

    return ProcessedSessionTimeSeries(
        session_id=session_id,
        measurement_id=f"measurement-{session_id}",
        start_time=START,
        end_time=START + timedelta(seconds=duration),
        duration=float(duration),
        eeg=eeg,
        ppg=ppg,
        acc=acc,
        fused_metrics=fused,
        metadata=SessionMetadata(
            sampling_rate=SamplingRate(),
            processing_version="2.1.0",
            quality_score=quality_score,
        ),
    )


@pytest.fixture
def session_factory():
    """The make_session builder, for tests that need variants."""
    return make_session


@pytest.fixture
def session_start() -> datetime:
    return START


@pytest.fixture
def session() -> ProcessedSessionTimeSeries:
    return make_session()


# ---------------------------------------------------------------------------
# Integration inputs
# ---------------------------------------------------------------------------

EEG_SCORES = {"emotional_balance": 100, "brain_focus": 100, "brain_arousal": 94, "stress_level": 100}
PPG_SCORES = {"stress_health": 70, "autonomic_health": 83, "hrv_health": 80}


def make_analysis(modality: str, scores: dict[str, float]) -> ModalityAnalysis:
    return ModalityAnalysis.from_dict(modality, {
        "dimensions": {
            name: {"score": score, "level": "normal", "clinical_significance": "normal"}
            for name, score in scores.items()
        },
    })


@pytest.fixture
def analysis_factory():
    return make_analysis


@pytest.fixture
def eeg_analysis() -> ModalityAnalysis:
    return make_analysis("eeg", EEG_SCORES)


@pytest.fixture
def ppg_analysis() -> ModalityAnalysis:
    return make_analysis("ppg", PPG_SCORES)


@pytest.fixture
def subject() -> SubjectProfile:
    return SubjectProfile(
        age=34,
        gender="female",
        occupation="software engineer",
        lifestyle=Lifestyle(sleep_hours=6.5, exercise_frequency="2x/week", stress_level="moderate"),
    )


# ---------------------------------------------------------------------------
# Document stores
# ---------------------------------------------------------------------------

class RecordingDocumentStore(InMemoryDocumentStore):
    """In-memory store that records every write and can fail on demand.

    ``fail_on`` holds (collection, key) pairs whose put raises StorageError.
    """

    def __init__(self, fail_on: set[tuple[str, str]] | None = None) -> None:
        super().__init__()
        self.fail_on = set(fail_on or ())
        self.writes: list[tuple[str, str]] = []

    def put(self, collection: str, key: str, document: dict[str, Any]) -> None:
        if (collection, key) in self.fail_on:
            raise StorageError(f"simulated outage writing {collection}/{key}")
        super().put(collection, key, document)
        self.writes.append((collection, key))


@pytest.fixture
def document_store() -> RecordingDocumentStore:
    return RecordingDocumentStore()


# ---------------------------------------------------------------------------
# In-memory SQLite fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def biosignal_db():
    """Create an in-memory BiosignalDatabase for testing."""
    from vitalfuse.core.storage.database import BiosignalDatabase

    db = BiosignalDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def document_encryptor():
    """Create a DocumentEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from vitalfuse.core.storage.encryption import DocumentEncryptor

    return DocumentEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def document_repository(biosignal_db, document_encryptor):
    """Create an EncryptedDocumentRepository backed by in-memory SQLite."""
    from vitalfuse.core.storage.repository import EncryptedDocumentRepository

    return EncryptedDocumentRepository(biosignal_db, document_encryptor)


@pytest.fixture
def audit_logger(biosignal_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from vitalfuse.core.audit.logger import AuditLogger

    return AuditLogger(biosignal_db)
