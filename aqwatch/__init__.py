"""Air-quality station missing-data watcher (CNEMC feed -> WeChat Work / DingTalk)."""

__version__ = "1.0.0"
