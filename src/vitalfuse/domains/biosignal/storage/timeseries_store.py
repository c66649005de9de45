"""Session time-series store: one metadata document plus one chunk per modality.

Layout in the document store::

    processed_timeseries/{session_id}_processed          metadata + presence flags
    processed_timeseries_chunks/{session_id}_processed_eeg
    processed_timeseries_chunks/{session_id}_processed_ppg
    processed_timeseries_chunks/{session_id}_processed_acc
    processed_timeseries_chunks/{session_id}_processed_fused   (optional)

Callers never see this layout: ``load`` returns a ProcessedSessionTimeSeries
and ``format_for_analysis`` returns the grouped analysis bundle.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from vitalfuse.core.storage.documents import DocumentStore, StorageError, SupportsDelete
from vitalfuse.domains.biosignal.domain_logic.downsampling import downsample
from vitalfuse.domains.biosignal.domain_logic.session_models import (
    CHUNK_TYPES,
    HEADLINE_CHANNELS,
    LAYOUTS,
    FusedMetrics,
    ModalityTimeSeries,
    ProcessedSessionTimeSeries,
    SessionMetadata,
)
from vitalfuse.domains.biosignal.domain_logic.statistics import compute_statistics
from vitalfuse.domains.biosignal.domain_logic.subject import SubjectProfile
from vitalfuse.domains.biosignal.errors import DataIntegrityError

logger = logging.getLogger(__name__)

METADATA_COLLECTION = "processed_timeseries"
CHUNK_COLLECTION = "processed_timeseries_chunks"

PRESENCE_FLAGS = {
    "eeg": "has_eeg_data",
    "ppg": "has_ppg_data",
    "acc": "has_acc_data",
    "fused": "has_fused_metrics",
}


def session_key(session_id: str) -> str:
    return f"{session_id}_processed"


def chunk_key(key: str, chunk_type: str) -> str:
    return f"{key}_{chunk_type}"


class TimeSeriesStore:
    """Persists processed sessions and derives the analysis bundle.

    Usage::

        store = TimeSeriesStore(InMemoryDocumentStore())
        key = store.save(session)                # "s-1_processed"
        restored = store.load("s-1")
        bundle = store.format_for_analysis(restored, subject)
    """

    def __init__(self, document_store: DocumentStore, *, downsample_length: int = 60) -> None:
        if downsample_length <= 0:
            raise ValueError(f"downsample_length must be positive, got {downsample_length}")
        self._docs = document_store
        self._downsample_length = downsample_length

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, session: ProcessedSessionTimeSeries) -> str:
        """Validate and persist a session. Re-saving the same id overwrites it.

        The metadata document is written first, then one chunk per present
        modality. Nothing is retried here: a failed write surfaces as the
        store's StorageError and the caller re-runs the whole save.

        Returns:
            The session key.

        Raises:
            ValidationError: The session violates its invariants.
            StorageError: A write failed (retryable by the caller).
        """
        session.validate()

        key = session_key(session.session_id)
        now = self._now_iso()
        chunks = self._chunk_payloads(session)

        written: list[str] = []
        try:
            self._docs.put(METADATA_COLLECTION, key, self._metadata_document(session, chunks, now))
            written.append("metadata")
            for chunk_type, payload in chunks.items():
                document = {**payload, "chunk_type": chunk_type, "created_at": now}
                self._docs.put(CHUNK_COLLECTION, chunk_key(key, chunk_type), document)
                written.append(chunk_type)
        except StorageError:
            logger.error(
                "Save of %s failed after writing [%s]; caller must retry the whole save",
                key,
                ", ".join(written) or "nothing",
            )
            raise

        self._drop_stale_chunks(key, chunks)
        logger.info("Saved processed session %s (chunks=%s)", key, ",".join(chunks))
        return key

    def _drop_stale_chunks(self, key: str, chunks: dict[str, dict[str, Any]]) -> None:
        """Remove chunks a previous save of this session wrote but this one did not.

        Stores without delete keep them; load ignores unflagged chunks either way.
        """
        if not isinstance(self._docs, SupportsDelete):
            return
        for chunk_type in CHUNK_TYPES:
            if chunk_type in chunks:
                continue
            try:
                if self._docs.delete(CHUNK_COLLECTION, chunk_key(key, chunk_type)):
                    logger.info("Removed stale %s chunk of %s", chunk_type, key)
            except StorageError as exc:
                logger.warning("Could not remove stale %s chunk of %s: %s", chunk_type, key, exc)

    @staticmethod
    def _chunk_payloads(session: ProcessedSessionTimeSeries) -> dict[str, dict[str, Any]]:
        payloads = {name: series.to_dict() for name, series in session.modalities().items()}
        if session.fused_metrics is not None:
            payloads["fused"] = session.fused_metrics.to_dict()
        return payloads

    @staticmethod
    def _metadata_document(
        session: ProcessedSessionTimeSeries,
        chunks: dict[str, dict[str, Any]],
        now: str,
    ) -> dict[str, Any]:
        document: dict[str, Any] = {
            "session_id": session.session_id,
            "measurement_id": session.measurement_id,
            "start_time": session.start_time.isoformat(),
            "end_time": session.end_time.isoformat(),
            "duration": session.duration,
            "metadata": session.metadata.to_dict(),
            "created_at": now,
            "updated_at": now,
        }
        for chunk_type, flag in PRESENCE_FLAGS.items():
            document[flag] = chunk_type in chunks
        return document

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self, session_id: str) -> ProcessedSessionTimeSeries | None:
        """Reconstruct a stored session.

        Returns:
            The session, or None when no metadata document exists.

        Raises:
            DataIntegrityError: A flagged chunk is missing (a partial or
                still in-flight save) or a chunk is mistagged.
            StorageError: A read failed (retryable by the caller).
        """
        key = session_key(session_id)
        meta = self._docs.get(METADATA_COLLECTION, key)
        if meta is None:
            logger.debug("No processed session stored under %s", key)
            return None

        kwargs: dict[str, Any] = {}
        for chunk_type in CHUNK_TYPES:
            if not meta.get(PRESENCE_FLAGS[chunk_type]):
                continue
            payload = self._load_chunk(session_id, key, chunk_type)
            try:
                if chunk_type == "fused":
                    kwargs["fused_metrics"] = FusedMetrics.from_dict(payload)
                else:
                    kwargs[chunk_type] = ModalityTimeSeries.from_dict(payload)
            except (AttributeError, TypeError, ValueError) as exc:
                raise DataIntegrityError(
                    f"Chunk {chunk_key(key, chunk_type)} is malformed: {exc}",
                    session_id=session_id,
                ) from exc

        try:
            session = ProcessedSessionTimeSeries(
                session_id=meta["session_id"],
                measurement_id=meta["measurement_id"],
                start_time=datetime.fromisoformat(meta["start_time"]),
                end_time=datetime.fromisoformat(meta["end_time"]),
                duration=float(meta["duration"]),
                metadata=SessionMetadata.from_dict(meta.get("metadata") or {}),
                **kwargs,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DataIntegrityError(
                f"Metadata document {key} is malformed: {exc}", session_id=session_id
            ) from exc

        logger.info("Loaded processed session %s (chunks=%d)", key, len(kwargs))
        return session

    def _load_chunk(self, session_id: str, key: str, chunk_type: str) -> dict[str, Any]:
        doc_key = chunk_key(key, chunk_type)
        document = self._docs.get(CHUNK_COLLECTION, doc_key)
        if document is None:
            raise DataIntegrityError(
                f"Chunk {doc_key} is flagged in the metadata but missing "
                "(partial or in-flight save)",
                session_id=session_id,
            )
        tag = document.pop("chunk_type", None)
        if tag != chunk_type:
            raise DataIntegrityError(
                f"Chunk {doc_key} is tagged {tag!r}, expected {chunk_type!r}",
                session_id=session_id,
            )
        document.pop("created_at", None)
        return document

    # ------------------------------------------------------------------
    # Analysis view
    # ------------------------------------------------------------------

    def format_for_analysis(
        self,
        session: ProcessedSessionTimeSeries,
        subject: SubjectProfile | None = None,
    ) -> dict[str, Any]:
        """Group a session into the bundle consumed by the integration step.

        Contains session info, full-resolution series grouped per modality,
        a StatisticalSummary per numeric channel, fused metrics when present,
        and headline series downsampled to ``downsample_length`` points.
        """
        session_info: dict[str, Any] = {
            "session_id": session.session_id,
            "measurement_id": session.measurement_id,
            "start_time": session.start_time.isoformat(),
            "end_time": session.end_time.isoformat(),
            "duration": session.duration,
            "quality_score": session.metadata.quality_score,
            "processing_version": session.metadata.processing_version,
            "sampling_rate": session.metadata.sampling_rate.to_dict(),
        }
        if subject is not None:
            session_info["subject"] = subject.to_dict()

        bundle: dict[str, Any] = {"session_info": session_info}
        statistics: dict[str, Any] = {}
        downsampled: dict[str, Any] = {}

        for name, series in session.modalities().items():
            if not series.has_data:
                continue
            bundle[f"{name}_time_series"] = _group_channels(series, LAYOUTS[name])
            statistics[name] = _channel_statistics(series.channels)
            downsampled[name] = self._headline(name, series.channels)

        fused = session.fused_metrics
        if fused is not None and fused.channels:
            bundle["fused_metrics"] = {k: list(v) for k, v in fused.channels.items()}
            statistics["fused"] = _channel_statistics(fused.channels)
            downsampled["fused"] = self._headline("fused", fused.channels)

        bundle["statistics"] = statistics
        bundle["downsampled"] = downsampled
        return bundle

    def load_for_analysis(
        self,
        session_id: str,
        subject: SubjectProfile | None = None,
    ) -> dict[str, Any] | None:
        """Load a session and format it; None when the session is not stored."""
        session = self.load(session_id)
        if session is None:
            return None
        return self.format_for_analysis(session, subject)

    def _headline(self, chunk_type: str, channels: dict[str, list[float]]) -> dict[str, list[float]]:
        return {
            name: downsample(channels[name], self._downsample_length)
            for name in HEADLINE_CHANNELS[chunk_type]
            if channels.get(name)
        }


def _group_channels(
    series: ModalityTimeSeries,
    layout: dict[str, dict[str, str]],
) -> dict[str, Any]:
    grouped: dict[str, Any] = {}
    placed: set[str] = set()
    for group, members in layout.items():
        entries: dict[str, Any] = {}
        for bundle_name, channel in members.items():
            if channel in series.channels:
                entries[bundle_name] = list(series.channels[channel])
                placed.add(channel)
            elif channel in series.categorical:
                entries[bundle_name] = list(series.categorical[channel])
                placed.add(channel)
        if entries:
            grouped[group] = entries

    additional = {
        name: list(values)
        for source in (series.channels, series.categorical)
        for name, values in source.items()
        if name not in placed
    }
    if additional:
        grouped["additional"] = additional
    if series.extras:
        grouped["extras"] = dict(series.extras)
    grouped["timestamps"] = list(series.timestamps)
    return grouped


def _channel_statistics(channels: dict[str, list[float]]) -> dict[str, dict[str, float]]:
    return {
        name: compute_statistics(values).to_dict()
        for name, values in channels.items()
        if values
    }


def session_from_request(data: dict[str, Any]) -> ProcessedSessionTimeSeries:
    """Build and validate a session from a tool/JSON payload."""
    session = ProcessedSessionTimeSeries.from_dict(data)
    session.validate()
    return session

