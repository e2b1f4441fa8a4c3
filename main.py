import argparse
from pathlib import Path

from emaktab_shot.bot import run_bot, run_once
from emaktab_shot.config import load_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="eMaktab dashboard screenshot bot")
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one screenshot batch for all stored accounts and exit",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    root = Path(__file__).resolve().parent
    settings = load_settings(root, config_path=args.config)
    try:
        if args.once:
            return run_once(settings)
        return run_bot(settings)
    except KeyboardInterrupt:
        print("[bot] stopped")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
