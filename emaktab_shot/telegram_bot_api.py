from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests


class TelegramApiError(RuntimeError):
    pass


@dataclass
class TelegramBotApi:
    token: str
    timeout_sec: int = 30

    def __post_init__(self) -> None:
        self.base_url = f"https://api.telegram.org/bot{self.token}"
        self.session = requests.Session()

    def _check(self, method: str, resp: requests.Response) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            data = {"ok": False, "description": resp.text[:200]}
        if not resp.ok or not bool(data.get("ok")):
            raise TelegramApiError(f"{method} failed: HTTP {resp.status_code} {data}")
        return data

    def _call(self, method: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{method}"
        try:
            resp = self.session.post(url, json=payload or {}, timeout=self.timeout_sec)
        except requests.RequestException as e:
            raise TelegramApiError(f"{method} failed: {e.__class__.__name__}") from e
        return self._check(method, resp)

    def get_me(self) -> Dict[str, Any]:
        return self._call("getMe").get("result") or {}

    def delete_webhook(self, *, drop_pending_updates: bool = False) -> Dict[str, Any]:
        payload = {"drop_pending_updates": bool(drop_pending_updates)}
        return self._call("deleteWebhook", payload).get("result") or {}

    def get_updates(
        self,
        *,
        offset: int,
        timeout: int = 25,
        allowed_updates: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {
            "offset": int(offset),
            "timeout": int(timeout),
        }
        if allowed_updates is not None:
            payload["allowed_updates"] = allowed_updates
        return self._call("getUpdates", payload).get("result") or []

    def send_message(
        self,
        *,
        chat_id: int,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
        disable_web_page_preview: bool = True,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chat_id": int(chat_id),
            "text": text,
            "disable_web_page_preview": bool(disable_web_page_preview),
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        return self._call("sendMessage", payload).get("result") or {}

    def send_photo(
        self,
        *,
        chat_id: int,
        photo: bytes,
        caption: str = "",
        filename: str = "screenshot.png",
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        # Uploads go as multipart, so nested fields must be JSON-encoded strings.
        data: Dict[str, Any] = {"chat_id": str(int(chat_id))}
        if caption:
            data["caption"] = caption[:1024]
        if reply_markup is not None:
            data["reply_markup"] = json.dumps(reply_markup, ensure_ascii=False)
        files = {"photo": (filename, photo, "image/png")}
        url = f"{self.base_url}/sendPhoto"
        try:
            resp = self.session.post(url, data=data, files=files, timeout=max(60, self.timeout_sec))
        except requests.RequestException as e:
            raise TelegramApiError(f"sendPhoto failed: {e.__class__.__name__}") from e
        return self._check("sendPhoto", resp).get("result") or {}

    def set_my_commands(self, commands: List[Dict[str, str]]) -> bool:
        payload = {"commands": commands}
        return bool(self._call("setMyCommands", payload).get("result"))
