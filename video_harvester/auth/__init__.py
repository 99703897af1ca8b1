"""
Authentication Module
=====================
Login handlers used by the navigation state machine's LoggingIn state.

    - ``BaseAuthHandler``        — abstract base for LMS login handlers
    - ``BrightspaceAuthHandler`` — Microsoft identity two-step sign-in
    - ``Credentials``            — email/password container (never persisted)
"""

from .base_auth import BaseAuthHandler, Credentials
from .brightspace_auth import BrightspaceAuthHandler

__all__ = [
    "BaseAuthHandler",
    "Credentials",
    "BrightspaceAuthHandler",
]
