"""
Assessment and override store.

Holds analyst-entered safeguard assessments and manual maturity overrides,
keyed by framework id. Write intents mirror the actions a UI or a bulk
import issues:

    - set_safeguard / set_safeguards_bulk / clear_safeguard
    - set_override / clear_override
    - save_compliance_snapshot

The scoring engine never writes here. It reads a point-in-time snapshot
(AssessmentSnapshot), which is immutable, so scoring can run while edits
continue. Writes are serialized by a lock and are last-write-wins per
safeguard or group.

State is persisted as a single JSON document:

    {
      "version": 1,
      "safeguard_assessments": {framework: {safeguard_id: {...}}},
      "overrides": {framework: {group_id: {...}}},
      "compliance_snapshots": [{...}]
    }
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any

from postureiq.scoring.maturity_calculator import get_axis_values
from postureiq.scoring.override_resolver import Override
from postureiq.scoring.statuses import (
    IMPLEMENTATION_STATUSES,
    MAX_MATURITY,
    MIN_MATURITY,
    POLICY_STATUSES,
)

logger = logging.getLogger(__name__)

STATE_VERSION = 1
STATE_FILENAME = "state.json"


class StoreError(Exception):
    """Raised when store state cannot be read or written."""

    pass


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return None


@dataclass(frozen=True)
class SafeguardAssessment:
    """
    An analyst's dual-axis assessment of one safeguard.

    Attributes:
        safeguard_id: Safeguard identifier.
        policy: Policy status id, or None if unset.
        implementation: Implementation status id, or None if unset.
        note: Free-text note.
        updated_at: When the assessment was last written.
    """

    safeguard_id: str
    policy: str | None = None
    implementation: str | None = None
    note: str = ""
    updated_at: datetime | None = None

    @property
    def is_assessed(self) -> bool:
        """True if at least one axis is set."""
        return bool(self.policy or self.implementation)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], safeguard_id: str | None = None) -> SafeguardAssessment:
        """Create from dictionary."""
        return cls(
            safeguard_id=str(safeguard_id if safeguard_id is not None else data["safeguard_id"]),
            policy=data.get("policy") or None,
            implementation=data.get("implementation") or None,
            note=str(data.get("note") or ""),
            updated_at=_parse_timestamp(data.get("updated_at", data.get("updatedAt"))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "safeguard_id": self.safeguard_id,
            "policy": self.policy,
            "implementation": self.implementation,
            "note": self.note,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class ComplianceSnapshot:
    """A saved set of framework scores, for trend tracking."""

    id: str
    timestamp: datetime
    scores: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "scores": dict(self.scores),
        }


@dataclass(frozen=True)
class AssessmentSnapshot:
    """
    Immutable point-in-time view of one framework's records.

    Attributes:
        framework_id: Framework identifier.
        assessments: Safeguard assessments by safeguard id.
        overrides: Overrides by group id.
    """

    framework_id: str
    assessments: Mapping[str, SafeguardAssessment] = field(
        default_factory=lambda: MappingProxyType({})
    )
    overrides: Mapping[str, Override] = field(
        default_factory=lambda: MappingProxyType({})
    )


def _validate_status(value: str | None, vocabulary: Any, axis: str) -> str | None:
    if not value:
        return None
    if value not in vocabulary:
        raise ValueError(
            f"Unknown {axis} status: {value!r}. Must be one of: {', '.join(vocabulary.ids())}"
        )
    return value


class AssessmentStore:
    """
    Thread-safe, last-write-wins store of assessments and overrides.

    Example:
        store = AssessmentStore.load(data_dir / "state.json")
        store.set_safeguard("cis_v8", "CIS-1.1", policy="approved_documented",
                            implementation="most_systems")
        store.set_override("cis_v8", "CIS-18", level=4, note="Annual pen test")
        snapshot = store.snapshot("cis_v8")
        store.save(data_dir / "state.json")
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._assessments: dict[str, dict[str, SafeguardAssessment]] = {}
        self._overrides: dict[str, dict[str, Override]] = {}
        self._snapshots: list[ComplianceSnapshot] = []

    # -------------------------------------------------------------------------
    # Write intents
    # -------------------------------------------------------------------------

    def set_safeguard(
        self,
        framework_id: str,
        safeguard_id: str,
        policy: str | None = None,
        implementation: str | None = None,
        note: str = "",
    ) -> SafeguardAssessment:
        """
        Create or overwrite a safeguard assessment.

        Raises:
            ValueError: If a status id is not in its vocabulary.
        """
        assessment = SafeguardAssessment(
            safeguard_id=safeguard_id,
            policy=_validate_status(policy, POLICY_STATUSES, "policy"),
            implementation=_validate_status(
                implementation, IMPLEMENTATION_STATUSES, "implementation"
            ),
            note=note or "",
            updated_at=datetime.now(UTC),
        )
        with self._lock:
            self._assessments.setdefault(framework_id, {})[safeguard_id] = assessment
        logger.debug("Set %s/%s: %s/%s", framework_id, safeguard_id, policy, implementation)
        return assessment

    def set_safeguards_bulk(
        self,
        framework_id: str,
        assessments: Mapping[str, Mapping[str, Any] | SafeguardAssessment],
    ) -> int:
        """
        Apply many assessments at once (e.g., accepted suggestions).

        Entries are merged into the existing records; safeguards not named
        are left untouched. All entries are validated before any is applied.

        Args:
            framework_id: Framework identifier.
            assessments: Records by safeguard id.

        Returns:
            Number of assessments written.

        Raises:
            ValueError: If any entry carries an unknown status id.
        """
        now = datetime.now(UTC)
        prepared: dict[str, SafeguardAssessment] = {}
        for safeguard_id, record in assessments.items():
            if isinstance(record, SafeguardAssessment):
                policy, implementation, note = record.policy, record.implementation, record.note
            else:
                policy, implementation = get_axis_values(record)
                note = str(record.get("note") or "")
            prepared[safeguard_id] = SafeguardAssessment(
                safeguard_id=safeguard_id,
                policy=_validate_status(policy, POLICY_STATUSES, "policy"),
                implementation=_validate_status(
                    implementation, IMPLEMENTATION_STATUSES, "implementation"
                ),
                note=note,
                updated_at=now,
            )

        with self._lock:
            self._assessments.setdefault(framework_id, {}).update(prepared)
        logger.info("Applied %d assessments to %s", len(prepared), framework_id)
        return len(prepared)

    def clear_safeguard(self, framework_id: str, safeguard_id: str) -> bool:
        """Remove a safeguard assessment. Returns True if one existed."""
        with self._lock:
            return self._assessments.get(framework_id, {}).pop(safeguard_id, None) is not None

    def set_override(
        self,
        framework_id: str,
        group_id: str,
        level: int,
        note: str = "",
    ) -> Override:
        """
        Set a manual maturity override for a group.

        Raises:
            ValueError: If level is not an integer in 0-5.
        """
        if isinstance(level, bool) or not isinstance(level, int):
            raise ValueError(f"Override level must be an integer, got {level!r}")
        if not MIN_MATURITY <= level <= MAX_MATURITY:
            raise ValueError(
                f"Override level must be between {MIN_MATURITY} and {MAX_MATURITY}, got {level}"
            )
        override = Override(
            group_id=group_id,
            level=level,
            note=note or "",
            timestamp=datetime.now(UTC),
        )
        with self._lock:
            self._overrides.setdefault(framework_id, {})[group_id] = override
        logger.info("Override set for %s/%s: level %d", framework_id, group_id, level)
        return override

    def clear_override(self, framework_id: str, group_id: str) -> bool:
        """Remove a group override. Returns True if one existed."""
        with self._lock:
            removed = self._overrides.get(framework_id, {}).pop(group_id, None)
        if removed is not None:
            logger.info("Override cleared for %s/%s", framework_id, group_id)
        return removed is not None

    def save_compliance_snapshot(self, scores: Mapping[str, float]) -> ComplianceSnapshot:
        """Record a set of framework scores for later comparison."""
        snapshot = ComplianceSnapshot(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(UTC),
            scores=dict(scores),
        )
        with self._lock:
            self._snapshots.append(snapshot)
        return snapshot

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self, framework_id: str) -> AssessmentSnapshot:
        """Get an immutable snapshot of one framework's records."""
        with self._lock:
            assessments = dict(self._assessments.get(framework_id, {}))
            overrides = dict(self._overrides.get(framework_id, {}))
        return AssessmentSnapshot(
            framework_id=framework_id,
            assessments=MappingProxyType(assessments),
            overrides=MappingProxyType(overrides),
        )

    def get_assessment(self, framework_id: str, safeguard_id: str) -> SafeguardAssessment | None:
        """Get one safeguard assessment."""
        with self._lock:
            return self._assessments.get(framework_id, {}).get(safeguard_id)

    def get_override(self, framework_id: str, group_id: str) -> Override | None:
        """Get one group override."""
        with self._lock:
            return self._overrides.get(framework_id, {}).get(group_id)

    def compliance_snapshots(self) -> list[ComplianceSnapshot]:
        """Get saved compliance snapshots, oldest first."""
        with self._lock:
            return list(self._snapshots)

    def framework_ids(self) -> list[str]:
        """Get frameworks that have any stored records."""
        with self._lock:
            return sorted(set(self._assessments) | set(self._overrides))

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert the full store state to a dictionary."""
        with self._lock:
            return {
                "version": STATE_VERSION,
                "safeguard_assessments": {
                    fw: {sid: a.to_dict() for sid, a in records.items()}
                    for fw, records in self._assessments.items()
                },
                "overrides": {
                    fw: {gid: o.to_dict() for gid, o in records.items()}
                    for fw, records in self._overrides.items()
                },
                "compliance_snapshots": [s.to_dict() for s in self._snapshots],
            }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssessmentStore:
        """
        Restore a store from a state dictionary.

        Raises:
            StoreError: If the state is malformed.
        """
        store = cls()
        try:
            for fw, records in (data.get("safeguard_assessments") or {}).items():
                store._assessments[fw] = {
                    sid: SafeguardAssessment.from_dict(record, sid)
                    for sid, record in records.items()
                }
            for fw, records in (data.get("overrides") or {}).items():
                store._overrides[fw] = {
                    gid: Override.from_dict(record, gid)
                    for gid, record in records.items()
                }
            for snap in data.get("compliance_snapshots") or []:
                store._snapshots.append(
                    ComplianceSnapshot(
                        id=str(snap.get("id") or uuid.uuid4()),
                        timestamp=_parse_timestamp(snap.get("timestamp")) or datetime.now(UTC),
                        scores={k: float(v) for k, v in (snap.get("scores") or {}).items()},
                    )
                )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed store state: {e}") from e
        return store

    @classmethod
    def load(cls, path: Path | str) -> AssessmentStore:
        """
        Load a store from a JSON state file.

        A missing file yields an empty store.

        Raises:
            StoreError: If the file cannot be read or parsed.
        """
        path = Path(path)
        if not path.exists():
            logger.debug("No state file at %s, starting empty", path)
            return cls()
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Invalid state file {path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Cannot read state file {path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"State file {path} must contain a JSON object")
        return cls.from_dict(data)

    def save(self, path: Path | str) -> None:
        """
        Write the store state to a JSON file atomically.

        Raises:
            StoreError: If the file cannot be written.
        """
        path = Path(path)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreError(f"Cannot write state file {path}: {e}") from e
        logger.debug("Saved state to %s", path)
