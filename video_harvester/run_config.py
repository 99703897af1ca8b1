"""
Unified Run Configuration
=========================
Single source of truth for ALL harvester defaults and wait bounds.

Every wait in the core is a fixed timeout read from this object; a wait
that runs out means "proceed without this optional step", never a retry
with backoff.  CLI flags populate it via ``from_cli_args``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "headless": True,
    # Navigation
    "navigation_timeout_ms": 10_000,      # goto() on an LMS / share address
    "next_navigation_timeout_ms": 10_000, # click on a "next" control
    "settle_timeout_ms": 15_000,          # networkidle after login / entry
    # Login
    "login_field_timeout_ms": 5_000,      # identifier field
    "password_field_timeout_ms": 8_000,   # secret field on the second screen
    "submit_navigation_timeout_ms": 7_000,
    "landmark_timeout_ms": 7_000,         # post-login navigation bar
    "landmark_fallback_wait_ms": 5_000,   # soft-continue when it never shows
    "stay_signed_in_timeout_ms": 5_000,
    "typing_delay_ms": 100,
    # Optional controls
    "optional_control_timeout_ms": 3_000,
    "shadow_host_timeout_ms": 5_000,
    "click_timeout_ms": 5_000,
    # Settle pauses after interactions
    "course_entry_wait_ms": 2_000,
    "section_click_pause_ms": 500,
    "scroll_pause_ms": 1_000,
    "lesson_load_wait_ms": 3_000,
    "after_next_wait_ms": 1_500,
    "first_lesson_wait_ms": 2_500,
    "cookie_settle_ms": 2_000,            # consent banner render
    "cookie_after_click_ms": 1_000,
    "password_verify_pause_ms": 300,      # before reading the secret back
    # Upper bound on any single optional step
    "optional_step_timeout_ms": 30_000,
    # Limits
    "max_scroll_passes": 30,
    "max_content_pages": 50,
    "max_frame_depth": 16,
    # Output
    "output_dir": "output",
    "output_basename": "youtube_links",
    "write_text": True,
    "write_docx": True,
}


@dataclass
class HarvestRunConfig:
    """
    Unified configuration consumed by every harvester subsystem.

    Populate via:
      - ``HarvestRunConfig()``                   → all defaults
      - ``HarvestRunConfig(headless=False)``     → override one value
      - ``HarvestRunConfig.from_cli_args(ns)``   → from argparse Namespace
    """

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    browser_args: List[str] = field(default_factory=lambda: ["--no-sandbox"])

    # ---- Navigation ----
    navigation_timeout_ms: int = _DEFAULTS["navigation_timeout_ms"]
    next_navigation_timeout_ms: int = _DEFAULTS["next_navigation_timeout_ms"]
    settle_timeout_ms: int = _DEFAULTS["settle_timeout_ms"]

    # ---- Login ----
    login_field_timeout_ms: int = _DEFAULTS["login_field_timeout_ms"]
    password_field_timeout_ms: int = _DEFAULTS["password_field_timeout_ms"]
    submit_navigation_timeout_ms: int = _DEFAULTS["submit_navigation_timeout_ms"]
    landmark_timeout_ms: int = _DEFAULTS["landmark_timeout_ms"]
    landmark_fallback_wait_ms: int = _DEFAULTS["landmark_fallback_wait_ms"]
    stay_signed_in_timeout_ms: int = _DEFAULTS["stay_signed_in_timeout_ms"]
    typing_delay_ms: int = _DEFAULTS["typing_delay_ms"]

    # ---- Optional controls ----
    optional_control_timeout_ms: int = _DEFAULTS["optional_control_timeout_ms"]
    shadow_host_timeout_ms: int = _DEFAULTS["shadow_host_timeout_ms"]
    click_timeout_ms: int = _DEFAULTS["click_timeout_ms"]

    # ---- Settle pauses ----
    course_entry_wait_ms: int = _DEFAULTS["course_entry_wait_ms"]
    section_click_pause_ms: int = _DEFAULTS["section_click_pause_ms"]
    scroll_pause_ms: int = _DEFAULTS["scroll_pause_ms"]
    lesson_load_wait_ms: int = _DEFAULTS["lesson_load_wait_ms"]
    after_next_wait_ms: int = _DEFAULTS["after_next_wait_ms"]
    first_lesson_wait_ms: int = _DEFAULTS["first_lesson_wait_ms"]
    cookie_settle_ms: int = _DEFAULTS["cookie_settle_ms"]
    cookie_after_click_ms: int = _DEFAULTS["cookie_after_click_ms"]
    password_verify_pause_ms: int = _DEFAULTS["password_verify_pause_ms"]

    # ---- Optional steps ----
    optional_step_timeout_ms: int = _DEFAULTS["optional_step_timeout_ms"]

    # ---- Limits ----
    max_scroll_passes: int = _DEFAULTS["max_scroll_passes"]
    max_content_pages: int = _DEFAULTS["max_content_pages"]
    max_frame_depth: int = _DEFAULTS["max_frame_depth"]

    # ---- Output (None / False = skip) ----
    output_dir: Optional[str] = _DEFAULTS["output_dir"]
    output_basename: str = _DEFAULTS["output_basename"]
    write_text: bool = _DEFAULTS["write_text"]
    write_docx: bool = _DEFAULTS["write_docx"]

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_cli_args(cls, args) -> "HarvestRunConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        max_pages = getattr(args, "max_pages", None)
        if max_pages is None:
            max_pages = _DEFAULTS["max_content_pages"]
        elif max_pages < 1:
            raise ValueError(f"max pages must be at least 1, got {max_pages}")
        cfg = cls(
            headless=not getattr(args, "headed", False),
            max_content_pages=max_pages,
            output_dir=getattr(args, "output_dir", None) or _DEFAULTS["output_dir"],
            write_text=not getattr(args, "no_text", False),
            write_docx=not getattr(args, "no_docx", False),
        )
        scale = getattr(args, "timeout_scale", None)
        if scale is not None and scale != 1.0:
            cfg.scale_timeouts(scale)
        return cfg

    def scale_timeouts(self, factor: float) -> None:
        """Multiply every wait and pause bound (slow networks, debugging)."""
        if factor <= 0:
            raise ValueError(f"timeout scale must be positive, got {factor}")
        for f in fields(self):
            if f.name.endswith("_ms"):
                setattr(self, f.name, max(1, int(getattr(self, f.name) * factor)))

    # -----------------------------------------------------------------------
    # Derived values
    # -----------------------------------------------------------------------
    @property
    def optional_step_timeout_s(self) -> float:
        return self.optional_step_timeout_ms / 1000

    @property
    def text_path(self) -> Optional[Path]:
        if not self.output_dir or not self.write_text:
            return None
        return Path(self.output_dir) / f"{self.output_basename}.txt"

    @property
    def docx_path(self) -> Optional[Path]:
        if not self.output_dir or not self.write_docx:
            return None
        return Path(self.output_dir) / f"{self.output_basename}.docx"

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, addresses: List[str]) -> None:
        """Emit a structured summary to the logger (never credentials)."""
        logger.info("=" * 60)
        logger.info("HARVEST RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  Addresses:        {len(addresses)}")
        for address in addresses:
            logger.info(f"    - {address[:90]}")
        logger.info(f"  Headless:         {self.headless}")
        logger.info(f"  Navigation:       {self.navigation_timeout_ms}ms per goto")
        logger.info(f"  Settle:           {self.settle_timeout_ms}ms networkidle bound")
        logger.info(f"  Max Pages:        {self.max_content_pages} per address")
        if self.output_dir:
            logger.info(f"  Output Dir:       {self.output_dir}")
            logger.info(f"  Formats:          "
                        f"{'txt ' if self.write_text else ''}{'docx' if self.write_docx else ''}")
        else:
            logger.info("  Output:           disabled")
        logger.info("=" * 60)
