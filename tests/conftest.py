"""Shared fixtures: sample documents and a fake render backend."""

import pytest

from tests.helpers import FakeBackend

SAMPLE_DOC = """\
# Auth Service

Users log in through the gateway.

**Login Flow Diagram:** user submits credentials, the gateway validates them.

Tokens are refreshed every hour.

**Token Lifecycle Diagram**: a token is issued, refreshed and finally revoked.

## Notes

Nothing else here.
"""


@pytest.fixture
def sample_doc(tmp_path):
    """A markdown file with two diagram descriptions."""
    path = tmp_path / "design.md"
    path.write_text(SAMPLE_DOC, encoding="utf-8")
    return path


@pytest.fixture
def backend():
    """Backend that always succeeds."""
    return FakeBackend()
