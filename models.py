# Module for the value types passed between the archive components

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Strategy(Enum):
    MIRROR = "mirror"
    SINGLE_DOCUMENT = "single_document"


class ProbeStatus(Enum):
    REACHABLE = "reachable"
    NOT_FOUND = "not_found"
    HARD_FAILURE = "hard_failure"


class OutcomeKind(Enum):
    SUCCESS = "success"
    FALLBACK_USED = "fallback_used"
    SKIPPED = "skipped"
    FAILED = "failed"


class ArtifactState(Enum):
    # Terminal states of PENDING -> PROBED -> FETCHING -> ...
    CAPTURED = "captured"
    FETCH_FAILED = "fetch_failed"
    NOT_FOUND_SKIP = "not_found_skip"


@dataclass(frozen=True)
class Artifact:
    identity: str
    description: Optional[str] = None

    @classmethod
    def from_config(cls, entry):
        """Builds an Artifact from a validated config entry ({'url': ..., 'description': ...})."""
        return cls(identity=entry['url'].strip(), description=entry.get('description'))


@dataclass(frozen=True)
class CaptureRecord:
    last_captured_at: str # ISO date, YYYY-MM-DD
    local_path: str # Store-relative, e.g. archive/example.org/index.html
    description: Optional[str] = None

    def to_dict(self):
        data = {'lastArchived': self.last_captured_at, 'archivedPath': self.local_path}
        if self.description is not None:
            data['description'] = self.description
        return data

    @classmethod
    def from_dict(cls, data):
        """Raises KeyError/TypeError/ValueError for entries missing the required fields."""
        last_archived = data['lastArchived']
        archived_path = data['archivedPath']
        if not isinstance(last_archived, str) or not isinstance(archived_path, str):
            raise ValueError("lastArchived and archivedPath must be strings")
        description = data.get('description')
        if description is not None and not isinstance(description, str):
            raise ValueError("description must be a string")
        return cls(last_captured_at=last_archived, local_path=archived_path, description=description)


@dataclass(frozen=True)
class DirectUrl:
    url: str


@dataclass(frozen=True)
class CommunityReference:
    name: str
    index_url: str


@dataclass(frozen=True)
class ProbeResult:
    status: ProbeStatus
    status_code: Optional[int] = None
    reason: str = ""

    @property
    def reachable(self):
        return self.status is ProbeStatus.REACHABLE


@dataclass(frozen=True)
class FetchResult:
    local_path: Optional[str] = None
    reason: str = ""

    @property
    def ok(self):
        return self.local_path is not None

    @classmethod
    def success(cls, local_path):
        return cls(local_path=local_path)

    @classmethod
    def failure(cls, reason):
        return cls(local_path=None, reason=reason)


@dataclass(frozen=True)
class CaptureOutcome:
    identity: str
    kind: OutcomeKind
    state: ArtifactState
    reason: str = ""
    record: Optional[CaptureRecord] = None

    @classmethod
    def success(cls, identity, record):
        return cls(identity, OutcomeKind.SUCCESS, ArtifactState.CAPTURED, record=record)

    @classmethod
    def fallback_used(cls, identity, existing_record, reason):
        return cls(identity, OutcomeKind.FALLBACK_USED, ArtifactState.FETCH_FAILED, reason, existing_record)

    @classmethod
    def skipped(cls, identity, reason, state=ArtifactState.FETCH_FAILED):
        return cls(identity, OutcomeKind.SKIPPED, state, reason)

    @classmethod
    def failed(cls, identity, reason):
        return cls(identity, OutcomeKind.FAILED, ArtifactState.FETCH_FAILED, reason)
