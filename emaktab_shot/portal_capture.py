import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from playwright.async_api import Browser, Page, async_playwright

from .config import PortalSettings
from .models import CaptureResult, Credential


LOGIN_SELECTOR = 'input[name="login"]'
PASSWORD_SELECTOR = 'input[name="password"]'
SUBMIT_SELECTOR = 'button[type="submit"]'
SUBMIT_LABEL = "Tizimga kirish"
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

SettleStrategy = Callable[[Page], Awaitable[None]]


def fixed_delay(settle_ms: int) -> SettleStrategy:
    """
    The portal exposes no reliable "dashboard ready" signal, so after submit
    we simply wait a fixed amount of time before taking the screenshot.
    """

    async def _settle(page: Page) -> None:
        await page.wait_for_timeout(max(0, int(settle_ms)))

    return _settle


@dataclass
class SafeCloser:
    browser: Optional[Browser] = None
    pw: Optional[object] = None

    async def close(self, timeout_sec: float = 12.0) -> None:
        async def _close_browser() -> None:
            if self.browser is not None:
                await self.browser.close()

        async def _stop_pw() -> None:
            if self.pw is not None:
                await self.pw.stop()

        # Timebox each close step so a wedged browser cannot hang the batch.
        try:
            await asyncio.wait_for(_close_browser(), timeout=timeout_sec)
        except Exception as e:
            print(f"[capture] browser close failed: {e}", flush=True)
        try:
            await asyncio.wait_for(_stop_pw(), timeout=timeout_sec)
        except Exception as e:
            print(f"[capture] playwright stop failed: {e}", flush=True)
        self.browser = None
        self.pw = None


async def _submit(page: Page) -> None:
    button = page.locator(SUBMIT_SELECTOR).or_(page.get_by_text(SUBMIT_LABEL)).first
    await button.click()


async def capture_dashboard(
    credential: Credential,
    portal: PortalSettings,
    *,
    settle: Optional[SettleStrategy] = None,
) -> CaptureResult:
    """
    Log into the portal as `credential` in a fresh headless browser and return
    a full-page PNG of whatever is rendered after the settle step.

    Never raises: any launch/navigation/form/screenshot error becomes
    CaptureResult(ok=False). The browser is torn down on every exit path.
    """
    settle_step = settle or fixed_delay(portal.settle_ms)
    closer = SafeCloser()
    try:
        closer.pw = await async_playwright().start()
        closer.browser = await closer.pw.chromium.launch(headless=portal.headless, args=BROWSER_ARGS)

        page = await closer.browser.new_page()
        page.set_default_timeout(portal.navigation_timeout_ms)
        page.set_default_navigation_timeout(portal.navigation_timeout_ms)

        await page.goto(portal.login_url, wait_until="networkidle")
        await page.fill(LOGIN_SELECTOR, credential.login)
        await page.fill(PASSWORD_SELECTOR, credential.password)
        await _submit(page)
        await settle_step(page)

        image = await page.screenshot(full_page=True)
        print(f"[capture] ok {credential.label()} bytes={len(image or b'')}", flush=True)
        return CaptureResult(ok=True, image=image)
    except Exception as e:
        print(f"[capture] error for {credential.label()}: {e}", flush=True)
        return CaptureResult(ok=False, error=str(e) or e.__class__.__name__)
    finally:
        await closer.close()


def make_capture(portal: PortalSettings) -> Callable[[Credential], Awaitable[CaptureResult]]:
    async def _capture(credential: Credential) -> CaptureResult:
        return await capture_dashboard(credential, portal)

    return _capture
