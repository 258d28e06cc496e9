# relay/debug.py
import os
import time
from pathlib import Path


LOG_PATH = Path(__file__).resolve().parents[1] / "wmp_debug.log"


def debug_enabled() -> bool:
    return os.getenv("WMP_DEBUG", "").strip() in {"1", "true", "yes", "on"}


def _echo(prefix: str, message: str) -> None:
    # stdout may be closed (pythonw, detached service); never fail the caller
    try:
        print(f"[{prefix}] {message}")
    except Exception:
        pass


def status(prefix: str, message: str) -> None:
    _echo(prefix, message)


def debug_log(message: str) -> None:
    if not debug_enabled():
        return

    stamp = time.strftime("%Y-%m-%d %H:%M:%S")
    try:
        with LOG_PATH.open("a", encoding="utf-8") as f:
            f.write(f"[{stamp}] {message}\n")
    except OSError:
        pass

    _echo("DEBUG", message)
