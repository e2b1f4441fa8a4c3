from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from emaktab_shot.bot import run_once  # noqa: E402
from emaktab_shot.config import load_settings  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Capture and send dashboard screenshots for all stored accounts now.")
    ap.add_argument("--config", default="config/config.yaml")
    ap.add_argument("--settle-ms", type=int, default=-1, help="Override the post-login wait (ms)")
    args = ap.parse_args()

    settings = load_settings(ROOT, config_path=args.config)
    if args.settle_ms >= 0:
        settings.portal.settle_ms = args.settle_ms
    return run_once(settings)


if __name__ == "__main__":
    raise SystemExit(main())
