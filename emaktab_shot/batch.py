from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Protocol

from .credential_store import find_all
from .models import CaptureOutcome, CaptureResult, Credential
from .telegram_bot_api import TelegramApiError, TelegramBotApi


CaptureFn = Callable[[Credential], Awaitable[CaptureResult]]


class OperatorChannel(Protocol):
    def send_text(self, text: str) -> bool: ...

    def send_photo(self, image: bytes, caption: str) -> bool: ...


@dataclass
class TelegramOperatorChannel:
    """Delivers to every chat in the operator allow-list, best-effort."""

    api: TelegramBotApi
    chat_ids: List[int] = field(default_factory=list)

    def send_text(self, text: str) -> bool:
        ok = True
        for chat_id in self.chat_ids:
            try:
                self.api.send_message(chat_id=chat_id, text=text)
            except TelegramApiError as e:
                print(f"[batch] text delivery failed chat={chat_id}: {e}", flush=True)
                ok = False
        return ok

    def send_photo(self, image: bytes, caption: str) -> bool:
        ok = True
        for chat_id in self.chat_ids:
            try:
                self.api.send_photo(chat_id=chat_id, photo=image, caption=caption)
            except TelegramApiError as e:
                print(f"[batch] photo delivery failed chat={chat_id}: {e}", flush=True)
                ok = False
        return ok


def photo_caption(credential: Credential) -> str:
    return f"📸 eMaktab skrinshoti\n👤 {credential.name}\n🔐 Login: {credential.login}"


def failure_notice(credential: Credential) -> str:
    return f"⚠️ {credential.name} ({credential.login}) uchun skrinshot olishda xatolik yuz berdi."


async def run_all(conn: sqlite3.Connection, capture: CaptureFn, channel: OperatorChannel) -> List[CaptureOutcome]:
    """
    One pass over all stored credentials in name order. Captures run one at a
    time; each outcome is delivered as it happens and a failure never stops
    the remaining credentials.
    """
    credentials = find_all(conn)
    print(f"[batch] start credentials={len(credentials)}", flush=True)

    outcomes: List[CaptureOutcome] = []
    for credential in credentials:
        result = await capture(credential)
        if result.ok and result.image:
            delivered = channel.send_photo(result.image, photo_caption(credential))
        else:
            if result.ok:
                result = CaptureResult(ok=False, error="empty screenshot")
            delivered = channel.send_text(failure_notice(credential))
        outcomes.append(CaptureOutcome(credential=credential, result=result, delivered=delivered))

    failed = sum(1 for o in outcomes if not o.result.ok)
    print(f"[batch] done ok={len(outcomes) - failed} failed={failed}", flush=True)
    return outcomes
