"""
Tests for the auth package: credential resolution and portal detection.
"""

from video_harvester.auth.base_auth import Credentials
from video_harvester.auth.brightspace_auth import BrightspaceAuthHandler


class TestCredentials:

    def test_is_complete(self):
        assert Credentials("a@b.c", "pw").is_complete
        assert not Credentials("a@b.c", "").is_complete
        assert not Credentials().is_complete

    def test_repr_masks_password(self):
        assert "hunter2" not in repr(Credentials("a@b.c", "hunter2"))


class TestResolveCredentials:

    def test_complete_credentials_used_as_is(self, monkeypatch):
        monkeypatch.setenv("BRIGHTSPACE_EMAIL", "env@school.edu")
        creds = BrightspaceAuthHandler().resolve_credentials(Credentials("flag@school.edu", "pw"))
        assert creds.email == "flag@school.edu"

    def test_env_fills_missing_fields(self, monkeypatch):
        monkeypatch.setenv("BRIGHTSPACE_EMAIL", "env@school.edu")
        monkeypatch.setenv("BRIGHTSPACE_PASSWORD", "from-env")
        creds = BrightspaceAuthHandler().resolve_credentials(Credentials(email="flag@school.edu"))
        assert creds.email == "flag@school.edu"
        assert creds.password == "from-env"

    def test_generic_prefix_fallback(self, monkeypatch):
        monkeypatch.delenv("BRIGHTSPACE_EMAIL", raising=False)
        monkeypatch.delenv("BRIGHTSPACE_PASSWORD", raising=False)
        monkeypatch.setenv("HARVESTER_EMAIL", "h@school.edu")
        monkeypatch.setenv("HARVESTER_PASSWORD", "pw")
        creds = BrightspaceAuthHandler().resolve_credentials()
        assert creds.is_complete

    def test_interactive_prompt(self, monkeypatch):
        for name in ("BRIGHTSPACE_EMAIL", "BRIGHTSPACE_PASSWORD", "HARVESTER_EMAIL", "HARVESTER_PASSWORD"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("builtins.input", lambda prompt: "typed@school.edu")
        monkeypatch.setattr("getpass.getpass", lambda prompt: "secret")
        creds = BrightspaceAuthHandler().resolve_credentials(interactive=True)
        assert creds.email == "typed@school.edu"
        assert creds.password == "secret"

    def test_non_interactive_leaves_gaps(self, monkeypatch):
        for name in ("BRIGHTSPACE_EMAIL", "BRIGHTSPACE_PASSWORD", "HARVESTER_EMAIL", "HARVESTER_PASSWORD"):
            monkeypatch.delenv(name, raising=False)
        assert not BrightspaceAuthHandler().resolve_credentials().is_complete


class TestDetect:

    def test_brightspace_addresses(self):
        handler = BrightspaceAuthHandler()
        assert handler.detect("https://school.brightspace.com/d2l/home")
        assert handler.detect("https://lms.school.edu/d2l/le/content/1/Home")
        assert not handler.detect("https://rise.articulate.com/share/x")
        assert not handler.detect("")
