"""Configuration for the watcher.

Each key is resolved independently; the first non-empty value wins:
1. process environment
2. .env beside the entry script
3. .env in the current working directory
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from dotenv import dotenv_values

CITY_NAME = "广州市"

DEFAULT_HTTP_TIMEOUT_SEC = 10

WECHAT_KEY_VAR = "WEBHOOK_KEY"
DINGTALK_TOKEN_VAR = "DINGTALK_ACCESS_TOKEN"
TIMEOUT_VAR = "HTTP_TIMEOUT_SEC"


@dataclass(frozen=True)
class WatcherSettings:
    wechat_webhook_key: str = ""
    dingtalk_access_token: str = ""
    http_timeout_sec: int = DEFAULT_HTTP_TIMEOUT_SEC

    @property
    def any_channel(self) -> bool:
        """True when at least one webhook channel has a credential."""
        return bool(self.wechat_webhook_key or self.dingtalk_access_token)


def default_env_files() -> List[Path]:
    """Returns candidate .env paths in precedence order (script dir, then cwd)."""
    script_dir = Path(sys.argv[0]).resolve().parent if sys.argv and sys.argv[0] else Path.cwd()
    paths = [script_dir / ".env", Path.cwd() / ".env"]
    # Same file twice when run from its own directory
    out: List[Path] = []
    for p in paths:
        if p not in out:
            out.append(p)
    return out


def _read_env_file(path: Path) -> Mapping[str, Optional[str]]:
    if not path.is_file():
        return {}
    return dotenv_values(path)


def _positive_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        v = int(value.strip())
    except ValueError:
        return None
    return v if v > 0 else None


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    env_files: Optional[Sequence[Path]] = None,
) -> WatcherSettings:
    """Load settings from the environment, falling back to .env files."""
    if environ is None:
        environ = os.environ
    if env_files is None:
        env_files = default_env_files()
    sources: List[Mapping[str, Optional[str]]] = [environ]
    sources.extend(_read_env_file(Path(p)) for p in env_files)

    def lookup(name: str) -> str:
        for src in sources:
            value = (src.get(name) or "").strip()
            if value:
                return value
        return ""

    timeout = _positive_int(lookup(TIMEOUT_VAR) or None) or DEFAULT_HTTP_TIMEOUT_SEC
    return WatcherSettings(
        wechat_webhook_key=lookup(WECHAT_KEY_VAR),
        dingtalk_access_token=lookup(DINGTALK_TOKEN_VAR),
        http_timeout_sec=timeout,
    )
