import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import yaml


DEFAULT_LOGIN_URL = "https://login.emaktab.uz/"
DEFAULT_SETTLE_MS = 3000
DEFAULT_CRON = "45 7 * * *"
DEFAULT_TIMEZONE = "Asia/Tashkent"
DEFAULT_DB_PATH = "data/emaktab_shot.sqlite"


def load_config(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    return data or {}


def cfg_get(cfg: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for key in key_path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def resolve_path(base_dir: Path, value: str) -> Path:
    p = Path(value)
    return p if p.is_absolute() else base_dir / p


def load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8-sig").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'\"")
        if key and key not in os.environ:
            os.environ[key] = value


def _safe(value: Any) -> str:
    return str(value or "").strip()


def _int_env(name: str, default: int) -> int:
    raw = _safe(os.getenv(name))
    if not raw:
        return int(default)
    try:
        return int(raw)
    except Exception:
        return int(default)


def _cfg_number(cfg: Dict[str, Any], key_path: str, default: Any, cast: Callable[[Any], Any]) -> Any:
    # Only a missing or empty key falls back; an explicit 0 is kept.
    raw = cfg_get(cfg, key_path)
    if raw is None or str(raw).strip() == "":
        return cast(default)
    return cast(raw)


def parse_operator_ids(raw: str) -> List[int]:
    out: List[int] = []
    for item in _safe(raw).replace("\n", ",").split(","):
        token = item.strip()
        if not token:
            continue
        try:
            value = int(token)
        except ValueError:
            raise SystemExit(f"Bad operator id (must be numeric): {token!r}")
        if value not in out:
            out.append(value)
    return out


@dataclass
class PortalSettings:
    login_url: str = DEFAULT_LOGIN_URL
    settle_ms: int = DEFAULT_SETTLE_MS
    navigation_timeout_ms: int = 30_000
    headless: bool = True


@dataclass
class Settings:
    token: str
    operator_ids: List[int]
    db_path: Path
    portal: PortalSettings = field(default_factory=PortalSettings)
    cron: str = DEFAULT_CRON
    timezone: str = DEFAULT_TIMEZONE
    poll_timeout: int = 25
    sleep_sec: float = 1.5


def load_settings(
    root: Path,
    *,
    config_path: Optional[str] = None,
) -> Settings:
    """
    Read .env files, the optional YAML config and the environment once.
    Missing token, store path or operator ids abort startup via SystemExit.
    """
    load_env_file(root / ".env")

    cfg: Dict[str, Any] = {}
    if config_path:
        cfg_file = resolve_path(root, config_path)
        if cfg_file.exists():
            cfg = load_config(str(cfg_file))

    token = _safe(os.getenv("TELEGRAM_BOT_TOKEN"))
    if not token:
        raise SystemExit("Missing TELEGRAM_BOT_TOKEN.")

    db_raw = _safe(os.getenv("EMAKTAB_DB_PATH")) or _safe(cfg_get(cfg, "store.db_path", DEFAULT_DB_PATH))
    if not db_raw:
        raise SystemExit("Missing store path (EMAKTAB_DB_PATH or store.db_path).")

    operator_ids = parse_operator_ids(_safe(os.getenv("OPERATOR_IDS")) or _safe(os.getenv("ADMIN_ID")))
    if not operator_ids:
        raise SystemExit("Missing OPERATOR_IDS (or ADMIN_ID).")

    settle_default = _cfg_number(cfg, "portal.settle_ms", DEFAULT_SETTLE_MS, int)
    portal = PortalSettings(
        login_url=_safe(cfg_get(cfg, "portal.login_url", DEFAULT_LOGIN_URL)) or DEFAULT_LOGIN_URL,
        settle_ms=max(0, _int_env("EMAKTAB_SETTLE_MS", settle_default)),
        navigation_timeout_ms=max(1000, _cfg_number(cfg, "portal.navigation_timeout_ms", 30_000, int)),
        headless=bool(cfg_get(cfg, "portal.headless", True)),
    )

    return Settings(
        token=token,
        operator_ids=operator_ids,
        db_path=resolve_path(root, db_raw),
        portal=portal,
        cron=_safe(cfg_get(cfg, "schedule.cron", DEFAULT_CRON)) or DEFAULT_CRON,
        timezone=_safe(cfg_get(cfg, "schedule.timezone", DEFAULT_TIMEZONE)) or DEFAULT_TIMEZONE,
        poll_timeout=max(10, _cfg_number(cfg, "telegram.poll_timeout", 25, int)),
        sleep_sec=max(0.2, _cfg_number(cfg, "telegram.sleep_sec", 1.5, float)),
    )
