"""
Brightspace Login Handler
=========================
Scripted Microsoft identity sign-in in front of a Brightspace LMS.

Flow (best effort, fixed timeouts):
    1. Navigate to the target address (redirects to the identity provider)
    2. Optional "Use another account" tile
    3. Identifier (email) field → "Next" → navigation
    4. Secret (password) field on the second screen, typed as keystrokes,
       then read back: an empty field aborts the run
    5. "Sign in" → navigation
    6. Optional "Stay signed in?" dialog, dismissed with "No"
    7. Post-login landmark (``d2l-navigation``), else a bounded wait

Security:
    - Credentials are never logged or printed.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Optional

from ..models import AuthenticationError
from ..surface import Surface
from ..utils import attempt, short
from .base_auth import BaseAuthHandler, Credentials

if TYPE_CHECKING:
    from ..run_config import HarvestRunConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------

OTHER_ACCOUNT_TILE = '#otherTile'
EMAIL_FIELD = 'input[type="email"], input#i0116'
NEXT_BUTTON = 'input[value="Next"], button[type="submit"], #idSIButton9'
PASSWORD_FIELD = '#i0118'
SIGN_IN_BUTTON = 'input[type="submit"], #idSIButton9'
STAY_SIGNED_IN_NO = '#idBtn_Back'

# Present once the LMS shell has rendered for an authenticated user
POST_LOGIN_LANDMARK = 'd2l-navigation'

_BRIGHTSPACE_URL_RE = re.compile(
    r"(brightspace\.com|/d2l/|d2l\.)", re.IGNORECASE
)


class BrightspaceAuthHandler(BaseAuthHandler):
    """Microsoft identity login in front of Brightspace."""

    @property
    def portal_name(self) -> str:
        return "Brightspace"

    @property
    def env_var_prefixes(self) -> List[str]:
        return ["BRIGHTSPACE", "HARVESTER"]

    def detect(self, url: str) -> bool:
        return bool(_BRIGHTSPACE_URL_RE.search(url or ""))

    async def login(
        self,
        surface: Surface,
        creds: Optional[Credentials],
        address: str,
        config: "HarvestRunConfig",
    ) -> bool:
        logger.info(f"[AUTH] Opening {short(address)}")

        # ── Step 1: Navigate (a slow redirect chain is not fatal) ──
        await attempt(
            "navigate to address",
            lambda: surface.navigate(address, config.navigation_timeout_ms),
        )

        # ── Step 2: Optional account picker ───────────────────────
        tile = await surface.wait_for_selector(OTHER_ACCOUNT_TILE, config.optional_control_timeout_ms)
        if tile is not None:
            await attempt(
                "use another account",
                lambda: surface.activate_and_wait(tile, config.navigation_timeout_ms),
            )
            logger.info("[AUTH] Clicked 'Use another account'")
        else:
            logger.debug("[AUTH] No account picker — continuing")

        # ── Step 3: Identifier ────────────────────────────────────
        email_field = await surface.wait_for_selector(EMAIL_FIELD, config.login_field_timeout_ms)
        if email_field is None:
            # Session carried over from an earlier address in this run
            if await surface.query_one(POST_LOGIN_LANDMARK) is not None:
                logger.info("[AUTH] Already signed in — reusing session")
                return False
            raise AuthenticationError("Sign-in form did not appear (email field missing)")

        if creds is None or not creds.is_complete:
            raise AuthenticationError("Sign-in required but credentials are incomplete")

        await email_field.fill(creds.email)
        logger.info("[AUTH] Email entered")

        next_button = await surface.query_one(NEXT_BUTTON)
        if next_button is not None:
            await surface.activate_and_wait(next_button, config.submit_navigation_timeout_ms)
            logger.info("[AUTH] Clicked Next")

        # ── Step 4: Secret, verified non-empty ────────────────────
        password_field = await surface.wait_for_selector(PASSWORD_FIELD, config.password_field_timeout_ms)
        if password_field is None:
            raise AuthenticationError("Password field did not appear after the email step")

        await password_field.click(timeout_ms=config.click_timeout_ms)
        await password_field.type_text(creds.password, delay_ms=config.typing_delay_ms)
        await surface.pause(config.password_verify_pause_ms)

        entered = await password_field.input_value()
        if not entered or not entered.strip():
            raise AuthenticationError("Password field still empty after typing")
        logger.info("[AUTH] Password typed")

        # ── Step 5: Submit ────────────────────────────────────────
        sign_in = await surface.query_one(SIGN_IN_BUTTON)
        if sign_in is not None:
            await surface.activate_and_wait(sign_in, config.submit_navigation_timeout_ms)
            logger.info("[AUTH] Clicked Sign in")
        else:
            logger.warning("[AUTH] No sign-in button found — continuing")

        # ── Step 6: Optional "Stay signed in?" ────────────────────
        stay = await surface.wait_for_selector(STAY_SIGNED_IN_NO, config.stay_signed_in_timeout_ms)
        if stay is not None:
            await attempt(
                "dismiss stay-signed-in",
                lambda: stay.click(timeout_ms=config.click_timeout_ms),
                timeout_s=config.optional_step_timeout_s,
            )
            logger.info("[AUTH] Declined 'Stay signed in'")
        else:
            logger.debug("[AUTH] No 'Stay signed in' prompt")

        # ── Step 7: Landmark or soft-continue ─────────────────────
        landmark = await surface.wait_for_selector(POST_LOGIN_LANDMARK, config.landmark_timeout_ms)
        if landmark is None:
            logger.info("[AUTH] No navigation landmark — waiting briefly and continuing")
            await surface.pause(config.landmark_fallback_wait_ms)
        else:
            logger.info("[AUTH] Brightspace navigation loaded")

        await surface.wait_for_settle(config.settle_timeout_ms)
        logger.info("[AUTH] ✅ Signed in")
        return True
