from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from emaktab_shot.bot import run_bot  # noqa: E402
from emaktab_shot.config import load_settings  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Run the eMaktab screenshot bot with its daily schedule.")
    ap.add_argument("--config", default="config/config.yaml")
    args = ap.parse_args()

    settings = load_settings(ROOT, config_path=args.config)
    try:
        return run_bot(settings)
    except KeyboardInterrupt:
        print("[bot] stopped")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
