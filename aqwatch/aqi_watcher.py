"""One-shot watcher: fetch the live CNEMC feed, flag stations with missing
readings, and push an alert to WeChat Work and/or DingTalk.

Usage
  aq-watcher                 # uses WEBHOOK_KEY / DINGTALK_ACCESS_TOKEN from env or .env
  aq-watcher --dry-run       # fetch + classify, print composed alerts, post nothing
  aq-watcher --timeout 20    # per-request HTTP timeout in seconds

Exit codes: 0 ok (including per-channel send failures), 2 fetch failed, 3 decode failed.
"""

import argparse
import sys
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence

import requests

from .alerts import AlertMessage, compose_dingtalk, compose_wechat_work
from .errors import DecodeError, HTTPStatusError, TransportError, WatcherError
from .resilience import RetryConfig, fetch_stations
from .settings import WatcherSettings, load_settings
from .stations import IGNORE_POSITION_NAMES, ProblemStation, select_problem_stations
from .webhooks import send_dingtalk, send_wechat_work

USER_AGENT = "aq-missing-watcher/1.0"

EXIT_OK = 0
EXIT_FETCH_FAILED = 2
EXIT_DECODE_FAILED = 3


@dataclass
class ChannelResult:
    sent: bool = False
    error: Optional[str] = None


@dataclass
class RunReport:
    """Outcome of one watcher pass."""

    station_count: int = 0
    problems: List[ProblemStation] = field(default_factory=list)
    channels: Dict[str, ChannelResult] = field(default_factory=dict)

    @property
    def problem_count(self) -> int:
        return len(self.problems)


# (name, credential getter, composer, sender)
CHANNELS = (
    ("wechat", lambda s: s.wechat_webhook_key, compose_wechat_work, send_wechat_work),
    ("dingtalk", lambda s: s.dingtalk_access_token, compose_dingtalk, send_dingtalk),
)


def make_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def dispatch(
    session: requests.Session,
    settings: WatcherSettings,
    problems: Sequence[ProblemStation],
    dry_run: bool = False,
) -> Dict[str, ChannelResult]:
    """Composes and sends one message per configured channel.

    A failing channel is recorded and does not stop the others.
    """
    results: Dict[str, ChannelResult] = {}
    for name, credential_of, compose, send in CHANNELS:
        credential = credential_of(settings)
        if not credential and not dry_run:
            continue
        message: Optional[AlertMessage] = compose(problems)
        if message is None:
            continue
        if dry_run:
            print(f"[aqwatch] dry-run {name} message:\n{message.text}")
            continue
        try:
            sent = send(session, credential, message, settings.http_timeout_sec)
        except WatcherError as e:
            print(f"[aqwatch] failed to send alert to {name}: {e}", file=sys.stderr)
            results[name] = ChannelResult(sent=False, error=str(e))
            continue
        print(f"[aqwatch] alert sent to {name}")
        results[name] = ChannelResult(sent=sent)
    return results


def run(
    settings: WatcherSettings,
    session: requests.Session,
    dry_run: bool = False,
    retry: Optional[RetryConfig] = None,
) -> RunReport:
    """Single pass: fetch, select problem stations, dispatch.

    Raises:
        TransportError / HTTPStatusError / DecodeError: fetch failed (fatal for the run)
    """
    if not settings.any_channel:
        print("[aqwatch] WARNING: no webhook configured (WEBHOOK_KEY / DINGTALK_ACCESS_TOKEN); "
              "fetching and checking only", file=sys.stderr)
    stations = fetch_stations(session, settings.http_timeout_sec, retry)
    problems = select_problem_stations(stations, IGNORE_POSITION_NAMES)
    report = RunReport(station_count=len(stations), problems=problems)
    if not problems:
        print(f"[aqwatch] all {len(stations)} stations (ignore list excluded) report complete data")
        return report
    report.channels = dispatch(session, settings, problems, dry_run=dry_run)
    print(f"[aqwatch] found {report.problem_count} station(s) with missing data (ignore list excluded)")
    return report


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Alert chat groups about air-quality stations with missing readings.")
    p.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="HTTP timeout in seconds (overrides HTTP_TIMEOUT_SEC; default 10)",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and classify, print composed alerts instead of posting them",
    )
    return p.parse_args(argv)


def main(
    argv: Optional[Sequence[str]] = None,
    session_factory: Callable[[], requests.Session] = make_session,
) -> int:
    args = parse_args(argv)
    settings = load_settings()
    if args.timeout is not None and args.timeout > 0:
        settings = replace(settings, http_timeout_sec=args.timeout)
    session = session_factory()
    try:
        run(settings, session, dry_run=args.dry_run)
    except DecodeError as e:
        print(f"[aqwatch] failed to decode data: {e}", file=sys.stderr)
        return EXIT_DECODE_FAILED
    except (TransportError, HTTPStatusError) as e:
        print(f"[aqwatch] failed to fetch data: {e}", file=sys.stderr)
        return EXIT_FETCH_FAILED
    finally:
        session.close()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
