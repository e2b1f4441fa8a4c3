from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .credential_store import (
    CredentialNotFound,
    DuplicateKeyError,
    create_credential,
    delete_by_id,
    find_all,
    find_by_name_or_login,
)
from .models import Credential


ADD_BUTTON = "➕ Add Account"
DELETE_BUTTON = "🗑 Delete account"
LIST_BUTTON = "📋 List accounts"

GREETING = "Assalomu alaykum! eMaktab avto-skrinshot botiga xush kelibsiz."
NO_PERMISSION = "❌ Sizda bu amalni bajarish huquqi yo‘q."
ASK_NAME = "➕ Yangi akkaunt qo‘shish.\nIltimos, o‘quvchi ismini yuboring:"
ASK_LOGIN = "🔐 Endi loginni yuboring:"
ASK_PASSWORD = "🔑 Endi parolni yuboring:"
BLANK_INPUT = "Bo‘sh matn qabul qilinmaydi."
EMPTY_STORE = "Bazadan hech qanday akkaunt topilmadi."
DUPLICATE_LOGIN = "❌ Bu login bilan akkaunt allaqachon mavjud. Iltimos, boshqa login kiriting."
SAVE_FAILED = "❌ Akkauntni saqlashda xatolik yuz berdi."
NOT_FOUND = "❌ Bu nom yoki login bo‘yicha akkaunt topilmadi. Qaytadan urinib ko‘ring yoki /start bosing."


class Mode(str, Enum):
    COLLECTING_NAME = "collecting_name"
    COLLECTING_LOGIN = "collecting_login"
    COLLECTING_PASSWORD = "collecting_password"
    AWAITING_DELETE_TARGET = "awaiting_delete_target"


@dataclass
class Session:
    mode: Mode
    draft: Dict[str, str] = field(default_factory=dict)


class SessionStore:
    """In-memory sessions keyed by operator id. Lost on restart."""

    def __init__(self) -> None:
        self._sessions: Dict[int, Session] = {}

    def get(self, user_id: int) -> Optional[Session]:
        return self._sessions.get(int(user_id))

    def put(self, user_id: int, session: Session) -> None:
        self._sessions[int(user_id)] = session

    def drop(self, user_id: int) -> None:
        self._sessions.pop(int(user_id), None)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


@dataclass
class Reply:
    text: str
    with_menu: bool = False


def main_keyboard() -> Dict[str, Any]:
    return {
        "keyboard": [
            [{"text": ADD_BUTTON}, {"text": DELETE_BUTTON}],
            [{"text": LIST_BUTTON}],
        ],
        "resize_keyboard": True,
    }


def _parse_command(text: str) -> str:
    if not text.startswith("/"):
        return ""
    cmd = text.split()[0].strip()
    if "@" in cmd:
        cmd = cmd.split("@", 1)[0]
    return cmd.lower()


def _format_list(credentials: Iterable[Credential]) -> str:
    return "\n".join(f"• {c.label()}" for c in credentials)


class ConversationHandler:
    def __init__(self, conn: sqlite3.Connection, sessions: SessionStore, operator_ids: Iterable[int]) -> None:
        self.conn = conn
        self.sessions = sessions
        self.operator_ids = {int(x) for x in operator_ids}

    def is_operator(self, user_id: int) -> bool:
        return int(user_id) in self.operator_ids

    def handle_text(self, user_id: int, text: str) -> List[Reply]:
        """
        Process one inbound text. Menu triggers always win over an in-progress
        flow, so pressing "add" again discards the previous draft.
        """
        clean = (text or "").strip()
        command = _parse_command(clean)

        if command in ("/start", "/help"):
            return [Reply(GREETING, with_menu=True)]
        if clean == ADD_BUTTON or command == "/add":
            return self._guarded(user_id, self._start_add)
        if clean == DELETE_BUTTON or command == "/delete":
            return self._guarded(user_id, self._start_delete)
        if clean == LIST_BUTTON or command == "/list":
            return self._guarded(user_id, self._list)

        if not self.is_operator(user_id):
            return []
        session = self.sessions.get(user_id)
        if session is None:
            return []
        return self._advance(user_id, session, clean)

    def _guarded(self, user_id: int, action) -> List[Reply]:
        if not self.is_operator(user_id):
            return [Reply(NO_PERMISSION)]
        return action(user_id)

    def _start_add(self, user_id: int) -> List[Reply]:
        self.sessions.put(user_id, Session(mode=Mode.COLLECTING_NAME))
        return [Reply(ASK_NAME)]

    def _start_delete(self, user_id: int) -> List[Reply]:
        credentials = find_all(self.conn)
        if not credentials:
            self.sessions.drop(user_id)
            return [Reply(EMPTY_STORE, with_menu=True)]
        self.sessions.put(user_id, Session(mode=Mode.AWAITING_DELETE_TARGET))
        text = (
            "🗑 Qaysi akkauntni o‘chirmoqchisiz?\n"
            "Ismini yoki loginini yuboring.\n\n"
            "Mavjud akkauntlar:\n" + _format_list(credentials)
        )
        return [Reply(text)]

    def _list(self, user_id: int) -> List[Reply]:
        credentials = find_all(self.conn)
        if not credentials:
            return [Reply(EMPTY_STORE, with_menu=True)]
        return [Reply("📋 Akkauntlar ro‘yxati:\n" + _format_list(credentials), with_menu=True)]

    def _advance(self, user_id: int, session: Session, text: str) -> List[Reply]:
        if not text:
            prompt = {
                Mode.COLLECTING_NAME: ASK_NAME,
                Mode.COLLECTING_LOGIN: ASK_LOGIN,
                Mode.COLLECTING_PASSWORD: ASK_PASSWORD,
            }.get(session.mode, "Ismini yoki loginini yuboring.")
            return [Reply(f"{BLANK_INPUT}\n{prompt}")]

        if session.mode == Mode.COLLECTING_NAME:
            session.draft["name"] = text
            session.mode = Mode.COLLECTING_LOGIN
            return [Reply(ASK_LOGIN)]

        if session.mode == Mode.COLLECTING_LOGIN:
            session.draft["login"] = text
            session.mode = Mode.COLLECTING_PASSWORD
            return [Reply(ASK_PASSWORD)]

        if session.mode == Mode.COLLECTING_PASSWORD:
            try:
                return [self._commit_add(session.draft, password=text)]
            finally:
                self.sessions.drop(user_id)

        if session.mode == Mode.AWAITING_DELETE_TARGET:
            try:
                return [self._commit_delete(text)]
            finally:
                self.sessions.drop(user_id)

        self.sessions.drop(user_id)
        return []

    def _commit_add(self, draft: Dict[str, str], *, password: str) -> Reply:
        try:
            credential = create_credential(
                self.conn,
                name=draft.get("name", ""),
                login=draft.get("login", ""),
                password=password,
            )
        except DuplicateKeyError:
            print(f"[bot] duplicate login on add: {draft.get('login', '')}", flush=True)
            return Reply(DUPLICATE_LOGIN, with_menu=True)
        except (sqlite3.Error, ValueError) as e:
            print(f"[bot] error saving credential: {e}", flush=True)
            return Reply(SAVE_FAILED, with_menu=True)
        print(f"[bot] credential added: {credential.label()}", flush=True)
        return Reply(
            f"✅ Akkaunt qo‘shildi:\n👤 {credential.name}\n🔐 Login: {credential.login}",
            with_menu=True,
        )

    def _commit_delete(self, query: str) -> Reply:
        try:
            credential = find_by_name_or_login(self.conn, query)
        except CredentialNotFound:
            return Reply(NOT_FOUND, with_menu=True)
        if credential.credential_id is None or not delete_by_id(self.conn, credential.credential_id):
            return Reply(NOT_FOUND, with_menu=True)
        print(f"[bot] credential deleted: {credential.label()}", flush=True)
        return Reply(
            f"✅ Akkaunt o‘chirildi:\n👤 {credential.name}\n🔐 Login: {credential.login}",
            with_menu=True,
        )
