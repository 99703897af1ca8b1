"""
Base Authentication Handler (Abstract)
======================================
Defines the contract every LMS login handler implements.

Design principles:
    - The navigation layer never imports portal-specific code directly
    - Credentials are passed in by the caller, used for one login step,
      and never persisted or logged
    - A handler either completes login, soft-continues on optional
      screens, or raises ``AuthenticationError``
"""

from __future__ import annotations

import getpass
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from ..surface import Surface

if TYPE_CHECKING:
    from ..run_config import HarvestRunConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Credentials container
# ---------------------------------------------------------------------------

@dataclass
class Credentials:
    """Plain credential container — resolved once, used by the login step."""
    email: str = ""
    password: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.email and self.password)

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password=***)"


# ---------------------------------------------------------------------------
# Abstract Base Handler
# ---------------------------------------------------------------------------

class BaseAuthHandler(ABC):
    """Abstract base for LMS login handlers.

    Subclasses MUST implement:
        - ``portal_name``       — human readable name (e.g. "Brightspace")
        - ``env_var_prefixes``  — env var prefixes for credential lookup
        - ``detect(url)``       — True if this handler owns the URL
        - ``login(surface, creds, address, config)`` — the login flow
    """

    # ── Identity ──────────────────────────────────────────────────

    @property
    @abstractmethod
    def portal_name(self) -> str:
        ...

    @property
    @abstractmethod
    def env_var_prefixes(self) -> List[str]:
        """Env-var prefixes for credential lookup.

        Example: ``["BRIGHTSPACE", "HARVESTER"]`` → checks
        BRIGHTSPACE_EMAIL / BRIGHTSPACE_PASSWORD, then HARVESTER_EMAIL /
        HARVESTER_PASSWORD.
        """
        ...

    # ── Detection ─────────────────────────────────────────────────

    @abstractmethod
    def detect(self, url: str) -> bool:
        """Return True if this handler should log in for *url*.

        Pattern matching only, no network calls.
        """
        ...

    # ── Login flow ────────────────────────────────────────────────

    @abstractmethod
    async def login(
        self,
        surface: Surface,
        creds: Optional[Credentials],
        address: str,
        config: "HarvestRunConfig",
    ) -> bool:
        """Navigate to *address* and authenticate.

        Returns:
            True if a fresh login was performed, False if an existing
            session was reused.

        Raises:
            AuthenticationError: a required credential step could not be
                confirmed.
        """
        ...

    # ── Credential resolution (shared logic) ──────────────────────

    def resolve_credentials(
        self, creds: Optional[Credentials] = None, *, interactive: bool = False
    ) -> Credentials:
        """Build ``Credentials`` from env vars + interactive prompt.

        Resolution order:
            1. Existing *creds* object (if complete) → use as-is
            2. Environment variables (``{PREFIX}_EMAIL``, ``{PREFIX}_PASSWORD``)
            3. Interactive terminal prompt (if *interactive* is True)
        """
        if creds is None:
            creds = Credentials()

        if creds.is_complete:
            return creds

        for prefix in self.env_var_prefixes:
            if not creds.email:
                creds.email = os.environ.get(f"{prefix}_EMAIL", "")
            if not creds.password:
                creds.password = os.environ.get(f"{prefix}_PASSWORD", "")

        if creds.is_complete:
            logger.info(f"[{self.portal_name}] Credentials resolved from environment")
            return creds

        if interactive:
            creds = self._prompt_credentials(creds)

        return creds

    def _prompt_credentials(self, creds: Credentials) -> Credentials:
        """Prompt for missing credentials (``getpass`` for the password)."""
        print(f"\n{'=' * 55}")
        print(f"  {self.portal_name} Sign-in Required")
        print(f"{'=' * 55}")

        if not creds.email:
            creds.email = input(f"  {self.portal_name} Email: ").strip()
        else:
            print(f"  Email: {creds.email}")

        if not creds.password:
            creds.password = getpass.getpass(f"  {self.portal_name} Password: ")

        print(f"{'=' * 55}\n")
        return creds
