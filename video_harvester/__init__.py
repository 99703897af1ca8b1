"""
Video Harvester
===============
Drives a real browser through an LMS (or a course-authoring share link),
descends through every nested frame and shadow-hosted control, and
collects the embedded video links as canonical watch URLs.

Pipeline::

    SessionOrchestrator → NavigationStateMachine → FrameTraversal
        → ContentExtractor → VideoURLNormalizer → ResultSet → exporter
"""

from .auth import BaseAuthHandler, BrightspaceAuthHandler, Credentials
from .extractor import ContentExtractor
from .models import (
    AuthenticationError,
    FailureReason,
    NavigationState,
    ResultSet,
    RunOutcome,
    RunStatus,
    VideoReference,
)
from .navigation import (
    LESSON_CHAIN,
    MODULE_VIEWER,
    SINGLE_CONTENT,
    NavigationProfile,
    NavigationStateMachine,
)
from .normalizer import VideoURLNormalizer, normalize_video_url
from .orchestrator import SessionOrchestrator, Strategy, select_strategy
from .run_config import HarvestRunConfig
from .traversal import FrameTraversal

__version__ = "1.0.0"

__all__ = [
    "AuthenticationError",
    "BaseAuthHandler",
    "BrightspaceAuthHandler",
    "ContentExtractor",
    "Credentials",
    "FailureReason",
    "FrameTraversal",
    "HarvestRunConfig",
    "LESSON_CHAIN",
    "MODULE_VIEWER",
    "NavigationProfile",
    "NavigationState",
    "NavigationStateMachine",
    "ResultSet",
    "RunOutcome",
    "RunStatus",
    "SINGLE_CONTENT",
    "SessionOrchestrator",
    "Strategy",
    "VideoReference",
    "VideoURLNormalizer",
    "normalize_video_url",
    "select_strategy",
]
