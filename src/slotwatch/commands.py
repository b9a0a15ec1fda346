"""
Chat command dispatch.

受信テキストを設定変更に変換し、返信文を返す。Telegram には依存しない。
"""

from __future__ import annotations

from datetime import date
import logging
import re
from typing import Callable, Dict, List, Optional

from .models import WatchConfig
from .monitor import format_date_jp
from .store import DocumentStore

logger = logging.getLogger(__name__)


MIN_INTERVAL = 1
MAX_INTERVAL = 60

_SHORT_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})$")
_LONG_DATE_RE = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$")
_REMOVE_RE = re.compile(r"^(?:削除\s*|(?:remove|del)\s+)(.+)$", re.IGNORECASE)
_INTERVAL_RE = re.compile(r"^(?:interval|間隔)\s*(\S+)$", re.IGNORECASE)
_SEPARATORS_RE = re.compile(r"[\s,、]+")

HELP_TEXT = (
    "【予約空き監視ボット 使い方】\n\n"
    "■ 初期設定\n"
    "「start」: 通知を受け取る登録\n\n"
    "■ 監視の開始・停止\n"
    "「on」: 監視を開始\n"
    "「off」: 監視を停止\n\n"
    "■ 監視日の管理（複数可）\n"
    "「1/15」: 1月15日を追加（「1/15 1/16」でまとめて追加）\n"
    "「削除 1/15」: 1月15日を削除\n"
    "「clear」: 全日付を削除\n\n"
    "■ チェック間隔\n"
    f"「interval 5」: 5分ごとにチェック（{MIN_INTERVAL}〜{MAX_INTERVAL}分）\n\n"
    "■ 状態確認\n"
    "「status」: 現在の設定を表示"
)


class CommandError(ValueError):
    """Invalid argument in a chat command; the message is shown to the user."""


def parse_date(text: str, today: Optional[date] = None) -> Optional[str]:
    """
    Parse ``1/15``, ``01-15``, ``2025/1/15`` or ``2025-01-15`` into ISO format.

    Month/day forms use the current year. Returns None when the text is not a date.
    Raises CommandError for date-shaped text that is not a real calendar date.
    """
    text = text.strip()
    today = today or date.today()

    short = _SHORT_DATE_RE.match(text)
    long_ = _LONG_DATE_RE.match(text)
    if short:
        year, month, day = today.year, int(short.group(1)), int(short.group(2))
    elif long_:
        year, month, day = (int(g) for g in long_.groups())
    else:
        return None

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        raise CommandError(f"日付が正しくありません: {text}") from None


def parse_dates(text: str, today: Optional[date] = None) -> Optional[List[str]]:
    """Parse a space/comma separated list of dates; None unless every token is a date."""
    tokens = [t for t in _SEPARATORS_RE.split(text.strip()) if t]
    if not tokens:
        return None
    parsed: List[str] = []
    for token in tokens:
        iso = parse_date(token, today)
        if iso is None:
            return None
        parsed.append(iso)
    return parsed


def _dates_block(config: Optional[WatchConfig]) -> str:
    dates = config.target_dates if config else []
    if not dates:
        return "監視日: 全日程"
    listed = "\n".join(format_date_jp(d) for d in dates)
    return f"監視日（{len(dates)}件）:\n{listed}"


def _cmd_start(store: DocumentStore, chat_id: int) -> str:
    store.set_recipient(chat_id)
    store.ensure_watch_config()
    logger.info("Recipient registered: %s", chat_id)
    return (
        "登録完了しました！\n\n"
        "日付を送信: 監視日を追加（例: 1/15）\n"
        "複数日程を追加できます\n"
        "「on」で監視開始\n"
        "「off」で監視停止\n"
        "「status」で状態確認\n"
        "「使い方」で詳細を表示"
    )


def _cmd_on(store: DocumentStore, chat_id: int) -> str:
    config = store.set_watch_enabled(True)
    logger.info("Monitoring enabled by %s", chat_id)
    info = _dates_block(config) if config.target_dates else "（全日程を監視）"
    return f"監視を開始しました。\n{info}\n\n空きが出たら通知します。"


def _cmd_off(store: DocumentStore, chat_id: int) -> str:
    store.set_watch_enabled(False)
    logger.info("Monitoring disabled by %s", chat_id)
    return "監視を停止しました。\n再開するには「on」と送信してください。"


def _cmd_clear(store: DocumentStore, chat_id: int) -> str:
    store.clear_target_dates()
    logger.info("All target dates cleared by %s", chat_id)
    return "全ての監視日を削除しました。\n全日程を監視対象にします。"


def _cmd_status(store: DocumentStore, chat_id: int) -> str:
    config = store.get_watch_config()
    state = store.get_watch_state()
    status = "ON（監視中）" if config and config.enabled else "OFF（停止中）"
    interval = config.interval_minutes if config else WatchConfig().interval_minutes
    lines = [
        f"現在の状態: {status}",
        f"チェック間隔: {interval}分",
        _dates_block(config),
    ]
    if state is not None:
        lines.append("")
        lines.append(f"最終チェック: {state.checked_at:%Y-%m-%d %H:%M}")
        lines.append(f"空き: {'あり' if state.has_availability else 'なし'}")
        if state.last_notified_at:
            lines.append(f"最終通知: {state.last_notified_at:%Y-%m-%d %H:%M}")
    lines.append("")
    lines.append("日付を送信で追加\n「削除 1/15」で削除\n「clear」で全削除")
    return "\n".join(lines)


def _cmd_help(store: DocumentStore, chat_id: int) -> str:
    return HELP_TEXT


COMMANDS: Dict[str, Callable[[DocumentStore, int], str]] = {
    "start": _cmd_start,
    "on": _cmd_on,
    "off": _cmd_off,
    "clear": _cmd_clear,
    "status": _cmd_status,
    "help": _cmd_help,
    "使い方": _cmd_help,
    "ヘルプ": _cmd_help,
}

UNKNOWN_REPLY = (
    "コマンドが認識できませんでした。\n\n"
    "「使い方」と送信すると\n"
    "使い方の一覧が表示されます。"
)


def _remove(store: DocumentStore, raw: str, today: Optional[date]) -> str:
    dates = parse_dates(raw, today)
    if dates is None:
        raise CommandError(f"日付が正しくありません: {raw}")
    config, removed = store.remove_target_dates(dates)
    missing = [d for d in dates if d not in removed]
    lines = []
    if removed:
        lines.append(f"{'、'.join(format_date_jp(d) for d in removed)} を監視対象から削除しました。")
    if missing:
        lines.append(f"{'、'.join(format_date_jp(d) for d in missing)} は監視対象に含まれていません。")
    lines.append("")
    lines.append(f"残りの監視日: {len(config.target_dates)}件")
    return "\n".join(lines)


def _add(store: DocumentStore, dates: List[str]) -> str:
    config = store.add_target_dates(dates)
    listed = "、".join(format_date_jp(d) for d in dates)
    return (
        f"{listed} を監視対象に追加しました。\n\n"
        f"現在の監視日数: {len(config.target_dates)}件\n\n"
        "「on」で監視開始\n"
        "「status」で一覧確認\n"
        "「削除 1/15」で日付を削除"
    )


def _set_interval(store: DocumentStore, raw: str) -> str:
    try:
        minutes = int(raw)
    except ValueError:
        raise CommandError(f"間隔は数字で指定してください: {raw}") from None
    if not MIN_INTERVAL <= minutes <= MAX_INTERVAL:
        raise CommandError(f"間隔は{MIN_INTERVAL}〜{MAX_INTERVAL}分で指定してください。")
    store.set_interval_minutes(minutes)
    return f"チェック間隔を{minutes}分に設定しました。"


def handle_command(
    store: DocumentStore,
    text: str,
    chat_id: int,
    today: Optional[date] = None,
) -> str:
    """
    Apply one chat command and return the reply text.

    Config writes are finished before this returns, so the next watch cycle sees them.
    """
    raw = text.strip()
    logger.info("Processing command %r from %s", raw, chat_id)

    try:
        removal = _REMOVE_RE.match(raw)
        if removal:
            return _remove(store, removal.group(1), today)

        interval = _INTERVAL_RE.match(raw)
        if interval:
            return _set_interval(store, interval.group(1))

        dates = parse_dates(raw, today)
        if dates:
            return _add(store, dates)
    except CommandError as e:
        logger.info("Rejected command %r: %s", raw, e)
        return str(e)

    handler = COMMANDS.get(raw.lstrip("/").lower())
    if handler is None:
        return UNKNOWN_REPLY
    return handler(store, chat_id)


__all__ = ["handle_command", "parse_date", "parse_dates", "CommandError", "HELP_TEXT"]
