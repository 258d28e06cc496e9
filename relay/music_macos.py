#relay/music_macos.py
import subprocess
from pathlib import Path
from typing import Optional

from .debug import debug_log
from .errors import SourceUnavailable
from .interfaces import ThreadedSource
from .models import PlaybackSample
from .web_player import PAGE_PROBE_JS, WEB_PLAYER_HOST, parse_page_payload

# (application name, how it runs JavaScript in a tab)
BROWSERS = (
    ("Google Chrome", "execute"),
    ("Microsoft Edge", "execute"),
    ("Brave Browser", "execute"),
    ("Chromium", "execute"),
    ("Safari", "do JavaScript"),
)

APP_DIRS = (Path("/Applications"), Path.home() / "Applications")

OSASCRIPT_TIMEOUT = 4.0


def _installed(app: str) -> bool:
    return any((d / f"{app}.app").exists() for d in APP_DIRS)


def _script(app: str, style: str) -> str:
    if style == "execute":
        run_js = "execute t javascript (item 1 of argv)"
    else:
        run_js = "do JavaScript (item 1 of argv) in t"

    # The probe JS arrives as argv so it never has to be escaped for AppleScript.
    return f'''
    on run argv
        if application "{app}" is not running then
            return "OK=0"
        end if
        tell application "{app}"
            repeat with w in windows
                repeat with t in tabs of w
                    if (URL of t as string) contains "{WEB_PLAYER_HOST}" then
                        return "OK=1|" & ({run_js})
                    end if
                end repeat
            end repeat
        end tell
        return "OK=0"
    end run
    '''


def read_web_player(timeout: float = OSASCRIPT_TIMEOUT) -> Optional[PlaybackSample]:
    """
    Evaluate the page probe in the first browser tab showing the web player.

    Returns None when no browser has the player open. Raises SourceUnavailable
    when a browser could not be scripted (for Chrome-family browsers "Allow
    JavaScript from Apple Events" must be enabled) and no other browser answered.
    """
    failures = []
    for app, style in BROWSERS:
        if not _installed(app):
            continue

        try:
            out = subprocess.check_output(
                ["osascript", "-e", _script(app, style), PAGE_PROBE_JS],
                text=True,
                stderr=subprocess.PIPE,
                timeout=timeout,
            ).strip()
        except subprocess.CalledProcessError as e:
            failures.append(f"{app}: {(e.stderr or '').strip() or e}")
            continue
        except (subprocess.TimeoutExpired, OSError) as e:
            failures.append(f"{app}: {e}")
            continue

        if not out.startswith("OK=1|"):
            continue

        debug_log(f"{app} web player: {out[5:]}")
        return parse_page_payload(out[5:])

    if failures:
        raise SourceUnavailable("; ".join(failures))
    return None


class MacWebPlayerSource(ThreadedSource):
    def __init__(self, timeout: float = OSASCRIPT_TIMEOUT):
        super().__init__(lambda: read_web_player(timeout))
