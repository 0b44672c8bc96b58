"""Watch a notice feed for titles that contain every trigger keyword and send alerts."""

from __future__ import annotations

import json
import re
import string
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from os import PathLike
from typing import Any

import requests

from .fetcher import FetchError, fetch_json
from .mailer import MailError, SmtpConfig, send_mail

ALERT_TITLE = "蓝桥杯大赛通知提醒"
NOTICE_URL = "https://dasai.lanqiao.cn/notices/"
TIME_PARSE_FAILED = "时间解析失败"
DEFAULT_SHORT = "检测到新的重要通知"
SERVER_CHAN_TIMEOUT = 10
WAIT_STEP = 10
BEIJING_OFFSET = timedelta(hours=8)

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)
_UTC_PATTERN = re.compile(
    r"\s*(\d{1,4})-(\d{1,2})-(\d{1,2})T(\d{1,2}):(\d{1,2}):(\d{1,2})"
)


@dataclass
class ServerChanConfig:
    """Settings for Server酱 push notifications."""

    enabled: bool = False
    uid: str = ""
    sendkey: str = ""


@dataclass
class Config:
    """Everything the monitor loop needs."""

    check_interval: int
    target_url: str
    smtp: SmtpConfig = field(default_factory=SmtpConfig)
    trigger_keywords: list[str] = field(default_factory=list)
    recipients: list[str] = field(default_factory=list)
    server_chan: ServerChanConfig = field(default_factory=ServerChanConfig)


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


def _require(mapping: dict[str, Any], key: str, kind: type) -> Any:
    if key not in mapping:
        raise ConfigError(f"配置缺少字段: {key}")
    value = mapping[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigError(f"配置字段类型错误: {key}")
    return value


def _optional(mapping: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    if key not in mapping:
        return default
    return _require(mapping, key, kind)


def _string_list(mapping: dict[str, Any], key: str) -> list[str]:
    values = _require(mapping, key, list)
    if not all(isinstance(value, str) for value in values):
        raise ConfigError(f"配置字段类型错误: {key}")
    return list(values)


def load_config(config_path: str | PathLike[str]) -> Config:
    """Read and validate the JSON configuration file at ``config_path``."""
    try:
        with open(config_path, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        raise ConfigError(f"无法打开配置文件: {config_path}") from exc

    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ConfigError(f"JSON解析错误: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("配置文件顶层必须是JSON对象")

    smtp_data = _require(data, "smtp", dict)
    security = _require(smtp_data, "security", str)
    smtp = SmtpConfig(
        server=_require(smtp_data, "server", str),
        port=_require(smtp_data, "port", int),
        username=_require(smtp_data, "username", str),
        password=_require(smtp_data, "password", str),
        use_ssl=security in ("ssl", "tls"),
    )

    server_chan = ServerChanConfig()
    if "server_chan" in data:
        chan_data = _require(data, "server_chan", dict)
        server_chan = ServerChanConfig(
            enabled=_optional(chan_data, "enabled", bool, False),
            uid=_optional(chan_data, "uid", str, ""),
            sendkey=_optional(chan_data, "sendkey", str, ""),
        )

    return Config(
        check_interval=_require(data, "check_interval", int),
        target_url=_require(data, "target_url", str),
        smtp=smtp,
        trigger_keywords=_string_list(data, "trigger_keywords"),
        recipients=_string_list(data, "recipients"),
        server_chan=server_chan,
    )


def contains_all_keywords(title: str, keywords: list[str]) -> bool:
    """Return whether ``title`` contains every keyword, ignoring ASCII case.

    An empty keyword list matches every title.
    """
    lower_title = title.translate(_ASCII_LOWER)
    return all(keyword.translate(_ASCII_LOWER) in lower_title for keyword in keywords)


def _creat_time(item: dict[str, Any]) -> str:
    value = item.get("creatTime", "")
    return value if isinstance(value, str) else ""


def check_for_trigger(json_data: Any, trigger_keywords: list[str]) -> list[dict[str, Any]]:
    """Return the items of ``datalist`` whose title holds every keyword, newest first."""
    if not isinstance(json_data, dict):
        return []
    datalist = json_data.get("datalist")
    if not isinstance(datalist, list):
        return []

    matched = [
        item
        for item in datalist
        if isinstance(item, dict)
        and isinstance(item.get("title"), str)
        and contains_all_keywords(item["title"], trigger_keywords)
    ]
    return sorted(matched, key=_creat_time, reverse=True)


def utc_to_beijing_time(utc_time: str) -> str:
    """Convert ``YYYY-MM-DDTHH:MM:SS`` in UTC to a Beijing time string.

    Text after the seconds is ignored. Unparseable input yields ``时间解析失败``.
    """
    match = _UTC_PATTERN.match(utc_time)
    if not match:
        return TIME_PARSE_FAILED
    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    if not (1 <= month <= 12 and 1 <= day <= 31 and hour <= 23 and minute <= 59 and second <= 60):
        return TIME_PARSE_FAILED
    try:
        moment = datetime(year, month, 1) + timedelta(
            days=day - 1, hours=hour, minutes=minute, seconds=second
        )
        moment += BEIJING_OFFSET
    except (ValueError, OverflowError):
        return TIME_PARSE_FAILED
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d} "
        f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d} (北京时间)"
    )


def _nnid(item: dict[str, Any]) -> int:
    value = item["nnid"]
    if not isinstance(value, (int, float)):
        raise TypeError(f"nnid must be a number, not {type(value).__name__}")
    return int(value)


def _string_field(item: dict[str, Any], key: str) -> str | None:
    value = item.get(key)
    return value if isinstance(value, str) else None


def generate_email_content(news_items: list[dict[str, Any]], trigger_keywords: list[str]) -> str:
    """Return the plain-text e-mail body describing ``news_items``."""
    quoted = ", ".join(f'"{keyword}"' for keyword in trigger_keywords)
    lines = [f"{ALERT_TITLE}\n\n", f"检测到以下重要通知（包含所有关键词: {quoted}）:\n\n"]

    for number, item in enumerate(news_items, start=1):
        lines.append(f"通知 #{number}:\n")
        lines.append("----------------------------\n")
        if (title := _string_field(item, "title")) is not None:
            lines.append(f"标题: {title}\n")
        if (created := _string_field(item, "creatTime")) is not None:
            lines.append(f"发布时间: {utc_to_beijing_time(created)}\n")
        if (column := _string_field(item, "programaName")) is not None:
            lines.append(f"栏目: {column}\n")
        if (synopsis := _string_field(item, "synopsis")) is not None:
            lines.append(f"内容简介: {synopsis}\n")
        if "nnid" in item:
            lines.append(f"通知链接: {NOTICE_URL}{_nnid(item)}\n")
        lines.append("\n")

    lines.append("----------------------------\n")
    lines.append("请及时登录蓝桥杯大赛官网查看完整信息。\n")
    lines.append("此邮件由自动监控系统生成，请勿直接回复。\n")
    return "".join(lines)


def generate_server_chan_content(
    news_items: list[dict[str, Any]], trigger_keywords: list[str]
) -> str:
    """Return the Markdown body of a Server酱 push describing ``news_items``."""
    quoted = ", ".join(f"`{keyword}`" for keyword in trigger_keywords)
    lines = [
        f"## {ALERT_TITLE}\n\n",
        f"检测到以下重要通知（包含所有关键词: {quoted}）:\n\n",
        "---\n\n",
    ]

    for item in news_items:
        if (title := _string_field(item, "title")) is not None:
            lines.append(f"### {title}\n")
        if (created := _string_field(item, "creatTime")) is not None:
            lines.append(f"- **发布时间**: {utc_to_beijing_time(created)}\n")
        if (column := _string_field(item, "programaName")) is not None:
            lines.append(f"- **栏目**: {column}\n")
        if "nnid" in item:
            lines.append(f"- **通知链接**: [点击查看]({NOTICE_URL}{_nnid(item)})\n")
        lines.append("\n")

    lines.append("---\n\n")
    lines.append("> 此通知由自动监控系统生成\n")
    return "".join(lines)


def send_server_chan(
    config: ServerChanConfig,
    news_items: list[dict[str, Any]],
    trigger_keywords: list[str],
) -> bool:
    """Push ``news_items`` through Server酱; return whether the service accepted it."""
    url = f"https://{config.uid}.push.ft07.com/send/{config.sendkey}.send"

    if news_items and "title" in news_items[0]:
        short = str(news_items[0]["title"])
    else:
        short = DEFAULT_SHORT
    payload = {
        "title": ALERT_TITLE,
        "desp": generate_server_chan_content(news_items, trigger_keywords),
        "short": short,
    }

    try:
        response = requests.post(
            url,
            data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=SERVER_CHAN_TIMEOUT,
        )
    except requests.RequestException as exc:
        print(f"Server酱请求失败: {exc}", file=sys.stderr)
        return False

    body = response.text
    try:
        reply = json.loads(body)
    except ValueError:
        print(f"解析Server酱响应失败: {body}", file=sys.stderr)
        return False

    if isinstance(reply, dict) and reply.get("message") == "SUCCESS":
        return True
    print(f"Server酱返回错误: {body}", file=sys.stderr)
    return False


def _alert(config: Config, items: list[dict[str, Any]]) -> None:
    content = generate_email_content(items, config.trigger_keywords)
    for recipient in config.recipients:
        print(f"发送邮件到: {recipient}")
        try:
            send_mail(config.smtp, recipient, ALERT_TITLE, content)
        except MailError as exc:
            print(exc, file=sys.stderr)
            print("邮件发送失败", file=sys.stderr)
        else:
            print("邮件发送成功")

    if config.server_chan.enabled:
        print("发送Server酱推送...")
        if send_server_chan(config.server_chan, items, config.trigger_keywords):
            print("Server酱推送成功")
        else:
            print("Server酱推送失败", file=sys.stderr)


def _check_once(config: Config) -> bool:
    print("获取JSON数据...")
    try:
        data = fetch_json(config.target_url)
    except FetchError as exc:
        print(f"获取JSON数据失败: {exc}", file=sys.stderr)
        return False
    print("成功获取JSON数据")

    items = check_for_trigger(data, config.trigger_keywords)
    if not items:
        print("未检测到包含所有关键词的通知")
        return False

    print(f"检测到 {len(items)} 条包含所有关键词的通知")
    _alert(config, items)
    return True


def _wait(check_interval: int) -> None:
    print("等待下一次检查...")
    for waited in range(0, check_interval, WAIT_STEP):
        if waited > 0 and waited % 60 == 0:
            print(f"已等待 {waited // 60} 分钟...")
        time.sleep(WAIT_STEP)


def run(config: Config) -> None:
    """Poll the target URL until a matching notice is found, then alert and stop."""
    print("启动监控服务...")
    print(f"监控URL: {config.target_url}")
    print(f"检查间隔: {config.check_interval}秒")
    print("触发关键词: " + "".join(f'"{keyword}" ' for keyword in config.trigger_keywords))
    print("收件人: " + "".join(f"{recipient}; " for recipient in config.recipients))
    print(f"Server酱推送: {'已启用' if config.server_chan.enabled else '已禁用'}")

    check_count = 0
    while True:
        check_count += 1
        print(f"\n=== 检查 #{check_count} ===")
        try:
            triggered = _check_once(config)
        except Exception as exc:  # a bad item must not stop the monitor
            print(f"发生异常: {exc}", file=sys.stderr)
            triggered = False
        if triggered:
            break
        _wait(config.check_interval)

    print("\n监控服务已停止")