from __future__ import annotations

import asyncio
import signal
import threading
import time
from typing import Any, Callable, Dict, List

from .batch import TelegramOperatorChannel, run_all
from .config import Settings
from .conversation import ConversationHandler, SessionStore, main_keyboard
from .credential_store import connect as db_connect, init_db
from .portal_capture import make_capture
from .scheduler import DailySchedule, start_thread
from .telegram_bot_api import TelegramApiError, TelegramBotApi


BOT_COMMANDS: List[Dict[str, str]] = [
    {"command": "start", "description": "Menyu"},
    {"command": "add", "description": "Akkaunt qo‘shish"},
    {"command": "delete", "description": "Akkauntni o‘chirish"},
    {"command": "list", "description": "Akkauntlar ro‘yxati"},
]


def _safe(value: Any) -> str:
    return str(value or "").strip()


def make_batch_job(settings: Settings, channel: TelegramOperatorChannel) -> Callable[[], object]:
    capture = make_capture(settings.portal)

    def _job() -> object:
        # Runs on the scheduler thread, so it needs its own sqlite connection.
        conn = db_connect(settings.db_path)
        try:
            init_db(conn)
            return asyncio.run(run_all(conn, capture, channel))
        finally:
            conn.close()

    return _job


def handle_message(api: TelegramBotApi, handler: ConversationHandler, *, message: Dict[str, Any]) -> None:
    text = message.get("text")
    if not isinstance(text, str):
        return
    user = dict(message.get("from") or {})
    chat = dict(message.get("chat") or {})
    user_id = int(user.get("id") or 0)
    chat_id = int(chat.get("id") or 0)
    if not user_id or not chat_id:
        return

    for reply in handler.handle_text(user_id, text):
        api.send_message(
            chat_id=chat_id,
            text=reply.text,
            reply_markup=main_keyboard() if reply.with_menu else None,
        )


def poll_forever(
    api: TelegramBotApi,
    handler: ConversationHandler,
    settings: Settings,
    stop_event: threading.Event,
) -> None:
    offset = 0
    allowed_updates = ["message"]
    while not stop_event.is_set():
        try:
            updates = api.get_updates(offset=offset, timeout=settings.poll_timeout, allowed_updates=allowed_updates)
            for upd in updates:
                offset = int(upd.get("update_id") or 0) + 1
                if upd.get("message"):
                    handle_message(api, handler, message=dict(upd.get("message") or {}))
        except KeyboardInterrupt:
            print("[bot] interrupted", flush=True)
            break
        except TelegramApiError as e:
            print(f"[bot] telegram api error: {e}", flush=True)
            stop_event.wait(max(3.0, settings.sleep_sec))
        except Exception as e:
            print(f"[bot] error: {e.__class__.__name__}: {e}", flush=True)
            stop_event.wait(max(3.0, settings.sleep_sec))


def _install_signal_handlers(stop_event: threading.Event) -> None:
    if threading.current_thread() is not threading.main_thread():
        return

    def _request_shutdown(signum, _frame) -> None:
        print(f"[bot] received signal {signum}, shutting down", flush=True)
        stop_event.set()
        raise KeyboardInterrupt

    signal.signal(signal.SIGINT, _request_shutdown)
    signal.signal(signal.SIGTERM, _request_shutdown)


def run_bot(settings: Settings) -> int:
    schedule = DailySchedule.from_cron(settings.cron, settings.timezone)
    api = TelegramBotApi(token=settings.token, timeout_sec=max(15, settings.poll_timeout + 5))
    me = api.get_me()
    api.delete_webhook(drop_pending_updates=False)
    try:
        api.set_my_commands(BOT_COMMANDS)
    except TelegramApiError as e:
        print(f"[bot] setMyCommands failed: {e}", flush=True)
    print(
        f"[bot] started bot=@{_safe(me.get('username'))} operators={len(settings.operator_ids)} "
        f"schedule='{settings.cron}' tz={settings.timezone}",
        flush=True,
    )

    conn = db_connect(settings.db_path)
    init_db(conn)
    handler = ConversationHandler(conn, SessionStore(), settings.operator_ids)
    # The scheduler thread gets its own client so no requests.Session is shared across threads.
    channel = TelegramOperatorChannel(api=TelegramBotApi(token=settings.token), chat_ids=list(settings.operator_ids))

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)
    start_thread(schedule, make_batch_job(settings, channel), stop_event)

    try:
        poll_forever(api, handler, settings, stop_event)
    finally:
        stop_event.set()
        conn.close()
        print("[bot] store connection closed", flush=True)
    return 0


def run_once(settings: Settings) -> int:
    api = TelegramBotApi(token=settings.token)
    channel = TelegramOperatorChannel(api=api, chat_ids=list(settings.operator_ids))
    started = time.monotonic()
    outcomes = make_batch_job(settings, channel)()
    failed = sum(1 for o in (outcomes or []) if not o.result.ok)
    print(f"[bot] on-demand run finished in {time.monotonic() - started:.1f}s failed={failed}", flush=True)
    return 0
