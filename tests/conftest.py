"""
vc_notify Test Suite - Shared Fixtures and Configuration
"""

from __future__ import annotations

import os

import pytest

SNOWFLAKE_GUILD = "100000000000000001"
SNOWFLAKE_GUILD_2 = "100000000000000002"
SNOWFLAKE_VOICE = "200000000000000001"
SNOWFLAKE_VOICE_2 = "200000000000000002"
SNOWFLAKE_TEXT = "300000000000000001"
SNOWFLAKE_TEXT_2 = "300000000000000002"
SNOWFLAKE_USER = "400000000000000001"
SNOWFLAKE_USER_2 = "400000000000000002"


@pytest.fixture(autouse=True)
def reset_all_singletons():
    """
    Reset module-level singletons between tests.

    - Settings cache (first: logging reads settings)
    - Logging handlers and propagation (so caplog captures records)
    """

    def do_reset():
        from vc_notify.core.config import reset_settings
        from vc_notify.core.logging import reset_logging

        reset_settings()
        reset_logging()

    do_reset()
    yield
    do_reset()


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Clear VC_NOTIFY_* and DISCORD_TOKEN variables and run inside tmp_path."""
    for key in list(os.environ):
        if key.startswith("VC_NOTIFY_") or key == "DISCORD_TOKEN":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
