"""Unit tests for emaktab_shot.portal_capture.

All tests mock Playwright — no real browser is launched.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from emaktab_shot.config import PortalSettings
from emaktab_shot.models import Credential
from emaktab_shot.portal_capture import (
    BROWSER_ARGS,
    LOGIN_SELECTOR,
    PASSWORD_SELECTOR,
    SUBMIT_LABEL,
    capture_dashboard,
    fixed_delay,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def cred():
    return Credential(name="Alice", login="alice1", password="s3cr'et")


@pytest.fixture()
def portal():
    return PortalSettings(login_url="https://portal.example/", settle_ms=5, navigation_timeout_ms=1000)


@pytest.fixture()
def mock_playwright():
    """Patch async_playwright so launch/new_page/goto/... are AsyncMocks."""
    with patch("emaktab_shot.portal_capture.async_playwright") as mock_ap:
        page = MagicMock()
        page.goto = AsyncMock()
        page.fill = AsyncMock()
        page.wait_for_timeout = AsyncMock()
        page.screenshot = AsyncMock(return_value=b"\x89PNG-bytes")

        submit = MagicMock()
        submit.click = AsyncMock()
        page.locator.return_value.or_.return_value.first = submit

        browser = MagicMock()
        browser.new_page = AsyncMock(return_value=page)
        browser.close = AsyncMock()

        pw = MagicMock()
        pw.chromium.launch = AsyncMock(return_value=browser)
        pw.stop = AsyncMock()

        mock_ap.return_value.start = AsyncMock(return_value=pw)

        yield {
            "async_playwright": mock_ap,
            "pw": pw,
            "browser": browser,
            "page": page,
            "submit": submit,
        }


def _run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestSuccess:
    def test_returns_screenshot_bytes(self, cred, portal, mock_playwright):
        result = _run(capture_dashboard(cred, portal))
        assert result.ok is True
        assert result.image == b"\x89PNG-bytes"
        mock_playwright["page"].screenshot.assert_awaited_once_with(full_page=True)

    def test_launch_is_headless_without_sandbox(self, cred, portal, mock_playwright):
        _run(capture_dashboard(cred, portal))
        mock_playwright["pw"].chromium.launch.assert_awaited_once_with(headless=True, args=BROWSER_ARGS)
        assert "--no-sandbox" in BROWSER_ARGS

    def test_navigates_and_fills_verbatim(self, cred, portal, mock_playwright):
        page = mock_playwright["page"]
        _run(capture_dashboard(cred, portal))
        page.goto.assert_awaited_once_with("https://portal.example/", wait_until="networkidle")
        assert page.fill.await_args_list[0].args == (LOGIN_SELECTOR, "alice1")
        assert page.fill.await_args_list[1].args == (PASSWORD_SELECTOR, "s3cr'et")
        mock_playwright["submit"].click.assert_awaited_once()
        page.get_by_text.assert_called_once_with(SUBMIT_LABEL)

    def test_default_settle_is_fixed_delay(self, cred, portal, mock_playwright):
        _run(capture_dashboard(cred, portal))
        mock_playwright["page"].wait_for_timeout.assert_awaited_once_with(5)

    def test_custom_settle_strategy_replaces_delay(self, cred, portal, mock_playwright):
        settle = AsyncMock()
        _run(capture_dashboard(cred, portal, settle=settle))
        settle.assert_awaited_once_with(mock_playwright["page"])
        mock_playwright["page"].wait_for_timeout.assert_not_awaited()

    def test_browser_closed_after_success(self, cred, portal, mock_playwright):
        _run(capture_dashboard(cred, portal))
        mock_playwright["browser"].close.assert_awaited_once()
        mock_playwright["pw"].stop.assert_awaited_once()


class TestFailure:
    def test_navigation_error_becomes_failure_and_closes_browser(self, cred, portal, mock_playwright):
        mock_playwright["page"].goto.side_effect = TimeoutError("Timeout 30000ms exceeded")
        result = _run(capture_dashboard(cred, portal))
        assert result.ok is False
        assert "Timeout" in result.error
        assert result.image is None
        mock_playwright["browser"].close.assert_awaited_once()
        mock_playwright["pw"].stop.assert_awaited_once()
        mock_playwright["page"].screenshot.assert_not_awaited()

    def test_missing_field_becomes_failure(self, cred, portal, mock_playwright):
        mock_playwright["page"].fill.side_effect = RuntimeError("no element input[name=login]")
        result = _run(capture_dashboard(cred, portal))
        assert result.ok is False
        mock_playwright["browser"].close.assert_awaited_once()

    def test_launch_failure_still_stops_playwright(self, cred, portal, mock_playwright):
        mock_playwright["pw"].chromium.launch.side_effect = RuntimeError("executable missing")
        result = _run(capture_dashboard(cred, portal))
        assert result.ok is False
        assert "executable missing" in result.error
        mock_playwright["pw"].stop.assert_awaited_once()

    def test_close_error_does_not_mask_result(self, cred, portal, mock_playwright):
        mock_playwright["browser"].close.side_effect = RuntimeError("already closed")
        result = _run(capture_dashboard(cred, portal))
        assert result.ok is True
        mock_playwright["pw"].stop.assert_awaited_once()

    def test_failure_log_names_credential(self, cred, portal, mock_playwright, capsys):
        mock_playwright["page"].goto.side_effect = RuntimeError("boom")
        _run(capture_dashboard(cred, portal))
        out = capsys.readouterr().out
        assert "Alice (alice1)" in out
        assert "s3cr'et" not in out


def test_fixed_delay_waits_given_ms():
    page = MagicMock()
    page.wait_for_timeout = AsyncMock()
    _run(fixed_delay(4000)(page))
    page.wait_for_timeout.assert_awaited_once_with(4000)
