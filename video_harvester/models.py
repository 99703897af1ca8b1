"""
Harvest Data Model
==================
Value types shared by every stage of a harvest run.

- ``VideoReference`` — canonical watch URL (plain ``str``, compared by value)
- ``ResultSet``      — per-run, insertion-ordered set of references
- ``NavigationState``— the single live state of a navigation run
- ``RunOutcome``     — what a run hands back to its caller
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from .normalizer import VideoURLNormalizer

# Canonical ``https://www.youtube.com/watch?v={id}`` string
VideoReference = str


class NavigationState(str, Enum):
    """States of the navigation state machine."""
    LOGGING_IN = "logging_in"
    AWAITING_COURSE_ENTRY = "awaiting_course_entry"
    ON_CONTENT_PAGE = "on_content_page"
    ADVANCING_TO_NEXT = "advancing_to_next"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (NavigationState.DONE, NavigationState.FAILED)


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class FailureReason(str, Enum):
    """Why a run ended in ``RunStatus.FAILED``."""
    NONE = "none"
    AUTHENTICATION = "authentication"   # secret field empty / login form missing
    NAVIGATION = "navigation"           # state machine could not continue
    BROWSER = "browser"                 # browser failed to launch or crashed
    UNEXPECTED = "unexpected"


class AuthenticationError(Exception):
    """Raised when a required credential step cannot be confirmed.

    This is the only error that aborts a run.
    """


class ResultSet:
    """
    Unique, insertion-ordered collection of video references for one run.

    Raw references are normalized on the way in, so two encodings of the
    same video collapse into one entry.
    """

    def __init__(self, normalizer: Optional[VideoURLNormalizer] = None):
        self._normalizer = normalizer or VideoURLNormalizer()
        self._links: Dict[VideoReference, None] = {}

    def add_raw(self, raw: Optional[str]) -> Optional[VideoReference]:
        """Normalize *raw* and insert it.

        Returns:
            The reference if it was new, otherwise None (duplicate or
            unrecognised input).
        """
        reference = self._normalizer.normalize(raw)
        if reference is None or reference in self._links:
            return None
        self._links[reference] = None
        return reference

    def __contains__(self, reference: object) -> bool:
        return reference in self._links

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[VideoReference]:
        return iter(list(self._links))

    def finalize(self) -> List[VideoReference]:
        """Ordered snapshot of the collected references."""
        return list(self._links)


@dataclass
class RunOutcome:
    """Result of one harvest run.

    Failure never discards links collected before the failure point.
    """
    status: RunStatus = RunStatus.SUCCESS
    links: List[VideoReference] = field(default_factory=list)
    reason: FailureReason = FailureReason.NONE
    message: str = ""
    addresses: List[str] = field(default_factory=list)
    output_files: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @classmethod
    def from_results(
        cls,
        results: ResultSet,
        addresses: List[str],
        reason: FailureReason = FailureReason.NONE,
        message: str = "",
    ) -> "RunOutcome":
        status = RunStatus.SUCCESS if reason == FailureReason.NONE else RunStatus.FAILED
        return cls(
            status=status,
            links=results.finalize(),
            reason=reason,
            message=message,
            addresses=list(addresses),
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "success": self.success,
            "links": list(self.links),
            "reason": self.reason.value,
            "message": self.message,
            "addresses": list(self.addresses),
            "output_files": list(self.output_files),
        }
