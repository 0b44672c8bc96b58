import json
from unittest import mock

import pytest
import requests
import responses

from lqnotice.mailer import SmtpConfig
from lqnotice.monitor import (
    Config,
    ConfigError,
    ServerChanConfig,
    check_for_trigger,
    contains_all_keywords,
    generate_email_content,
    generate_server_chan_content,
    load_config,
    run,
    send_server_chan,
    utc_to_beijing_time,
)

TARGET_URL = "https://notices.example.com/api"
CHAN_URL = "https://example.push.ft07.com/send/placeholder.send"


def _settings(**overrides):
    data = {
        "check_interval": 20,
        "target_url": TARGET_URL,
        "trigger_keywords": ["省赛", "名单"],
        "recipients": ["alice@example.com", "bob@example.com"],
        "smtp": {
            "server": "smtp.example.com",
            "port": 465,
            "username": "alerts@example.com",
            "password": "password",
            "security": "ssl",
        },
        "server_chan": {"enabled": True, "uid": "example", "sendkey": "placeholder"},
    }
    data.update(overrides)
    return data


def _write(tmp_path, data):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return path


def _items():
    return [
        {
            "title": "省赛获奖名单公示",
            "creatTime": "2025-06-01T08:00:00",
            "programaName": "大赛通知",
            "synopsis": "简介",
            "nnid": 42,
        },
        {
            "title": "关于省赛名单的补充说明",
            "creatTime": "2025-06-16T09:11:44",
            "nnid": 43,
        },
    ]


def test_load_config_reads_all_fields(tmp_path):
    config = load_config(_write(tmp_path, _settings()))
    assert config.check_interval == 20
    assert config.target_url == TARGET_URL
    assert config.trigger_keywords == ["省赛", "名单"]
    assert config.recipients == ["alice@example.com", "bob@example.com"]
    assert config.smtp.server == "smtp.example.com"
    assert config.smtp.port == 465
    assert config.smtp.username == "alerts@example.com"
    assert config.smtp.password == "password"
    assert config.smtp.use_ssl is True
    assert config.server_chan == ServerChanConfig(True, "example", "placeholder")


@pytest.mark.parametrize(
    ("security", "expected"),
    [("ssl", True), ("tls", True), ("starttls", False), ("none", False)],
)
def test_load_config_security_sets_ssl(tmp_path, security, expected):
    data = _settings()
    data["smtp"]["security"] = security
    assert load_config(_write(tmp_path, data)).smtp.use_ssl is expected


def test_load_config_server_chan_defaults(tmp_path):
    data = _settings()
    del data["server_chan"]
    assert load_config(_write(tmp_path, data)).server_chan == ServerChanConfig()


def test_load_config_partial_server_chan(tmp_path):
    config = load_config(_write(tmp_path, _settings(server_chan={"uid": "example"})))
    assert config.server_chan == ServerChanConfig(enabled=False, uid="example", sendkey="")


def test_load_config_missing_file(tmp_path):
    missing = tmp_path / "absent.json"
    with pytest.raises(ConfigError, match="无法打开配置文件") as info:
        load_config(missing)
    assert str(missing) in str(info.value)


def test_load_config_bad_json(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="JSON解析错误"):
        load_config(path)


def test_load_config_missing_field(tmp_path):
    data = _settings()
    del data["target_url"]
    with pytest.raises(ConfigError, match="target_url"):
        load_config(_write(tmp_path, data))


def test_load_config_wrong_type(tmp_path):
    with pytest.raises(ConfigError, match="check_interval"):
        load_config(_write(tmp_path, _settings(check_interval="20")))


def test_empty_keywords_match_everything():
    assert contains_all_keywords("anything", []) is True


def test_keywords_match_ignoring_ascii_case():
    assert contains_all_keywords("LanQiao Cup 省赛 Results", ["lanqiao", "CUP", "省赛"]) is True


def test_keywords_require_every_keyword():
    assert contains_all_keywords("LanQiao Cup", ["lanqiao", "省赛"]) is False


def test_check_for_trigger_without_datalist():
    assert check_for_trigger({"other": []}, ["省赛"]) == []
    assert check_for_trigger({"datalist": {"title": "省赛"}}, ["省赛"]) == []


def test_check_for_trigger_filters_and_sorts_newest_first():
    data = {
        "datalist": [
            *_items(),
            {"title": "无关通知", "creatTime": "2025-07-01T00:00:00"},
            {"creatTime": "2025-07-02T00:00:00"},
            {"title": 5},
        ]
    }
    matched = check_for_trigger(data, ["省赛", "名单"])
    assert [item["title"] for item in matched] == [
        "关于省赛名单的补充说明",
        "省赛获奖名单公示",
    ]


def test_check_for_trigger_keeps_items_without_time():
    data = {"datalist": [{"title": "省赛名单"}, {"title": "省赛名单二", "creatTime": "2025-01-01T00:00:00"}]}
    matched = check_for_trigger(data, ["省赛"])
    assert [item["title"] for item in matched] == ["省赛名单二", "省赛名单"]


def test_utc_to_beijing_time_example():
    assert utc_to_beijing_time("2025-06-16T09:11:44") == "2025-06-16 17:11:44 (北京时间)"


def test_utc_to_beijing_time_rolls_over_year():
    assert utc_to_beijing_time("2025-12-31T20:30:00") == "2026-01-01 04:30:00 (北京时间)"


def test_utc_to_beijing_time_ignores_trailing_text():
    assert utc_to_beijing_time("2025-06-16T09:11:44.000Z") == utc_to_beijing_time(
        "2025-06-16T09:11:44"
    )


@pytest.mark.parametrize("text", ["", "yesterday", "2025-06-16 09:11:44", "2025-13-01T00:00:00"])
def test_utc_to_beijing_time_failure(text):
    assert utc_to_beijing_time(text) == "时间解析失败"


def test_generate_email_content():
    content = generate_email_content(_items(), ["省赛", "名单"])
    assert content.startswith("蓝桥杯大赛通知提醒\n\n")
    assert '包含所有关键词: "省赛", "名单"）:' in content
    assert "通知 #1:\n----------------------------\n标题: 省赛获奖名单公示\n" in content
    assert "通知 #2:\n" in content
    assert "栏目: 大赛通知\n" in content
    assert "内容简介: 简介\n" in content
    assert "通知链接: https://dasai.lanqiao.cn/notices/42\n" in content
    assert f"发布时间: {utc_to_beijing_time('2025-06-01T08:00:00')}\n" in content
    assert content.endswith("此邮件由自动监控系统生成，请勿直接回复。\n")


def test_generate_email_content_rejects_text_nnid():
    with pytest.raises(TypeError):
        generate_email_content([{"title": "x", "nnid": "abc"}], [])


def test_generate_server_chan_content():
    content = generate_server_chan_content(_items(), ["省赛", "名单"])
    assert content.startswith("## 蓝桥杯大赛通知提醒\n\n")
    assert "包含所有关键词: `省赛`, `名单`）:" in content
    assert "### 省赛获奖名单公示\n" in content
    assert "- **栏目**: 大赛通知\n" in content
    assert "- **通知链接**: [点击查看](https://dasai.lanqiao.cn/notices/43)\n" in content
    assert "内容简介" not in content
    assert content.endswith("> 此通知由自动监控系统生成\n")


def test_send_server_chan_success():
    chan = ServerChanConfig(enabled=True, uid="example", sendkey="placeholder")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, CHAN_URL, json={"message": "SUCCESS"})
        assert send_server_chan(chan, _items(), ["省赛"]) is True
        body = json.loads(rsps.calls[0].request.body)
    assert body["title"] == "蓝桥杯大赛通知提醒"
    assert body["short"] == "省赛获奖名单公示"
    assert body["desp"] == generate_server_chan_content(_items(), ["省赛"])


def test_send_server_chan_default_short():
    chan = ServerChanConfig(enabled=True, uid="example", sendkey="placeholder")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, CHAN_URL, json={"message": "SUCCESS"})
        assert send_server_chan(chan, [], []) is True
        body = json.loads(rsps.calls[0].request.body)
    assert body["short"] == "检测到新的重要通知"


@pytest.mark.parametrize(
    "reply",
    [{"body": '{"message": "bad key"}'}, {"body": "not json"}, {"body": requests.ConnectionError("down")}],
)
def test_send_server_chan_failure(reply):
    chan = ServerChanConfig(enabled=True, uid="example", sendkey="placeholder")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, CHAN_URL, **reply)
        assert send_server_chan(chan, _items(), ["省赛"]) is False


def test_run_retries_then_alerts(capsys):
    password = "password"
    config = Config(
        check_interval=20,
        target_url=TARGET_URL,
        smtp=SmtpConfig(server="smtp.example.com", username="alerts@example.com", password=password),
        trigger_keywords=["省赛", "名单"],
        recipients=["alice@example.com", "bob@example.com"],
        server_chan=ServerChanConfig(enabled=True, uid="example", sendkey="placeholder"),
    )
    with responses.RequestsMock() as rsps, mock.patch("smtplib.SMTP_SSL") as smtp_cls, mock.patch(
        "time.sleep"
    ) as sleep:
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.sendmail.return_value = {}
        rsps.add(responses.GET, TARGET_URL, status=500)
        rsps.add(responses.GET, TARGET_URL, json={"datalist": _items()})
        rsps.add(responses.POST, CHAN_URL, json={"message": "SUCCESS"})
        run(config)

    assert sleep.call_count == 2
    assert all(call.args == (10,) for call in sleep.call_args_list)
    sent_to = [call.args[1] for call in smtp.sendmail.call_args_list]
    assert sent_to == [["alice@example.com"], ["bob@example.com"]]
    email_bytes = smtp.sendmail.call_args_list[0].args[2]
    assert "省赛获奖名单公示".encode("utf-8") in email_bytes
    out, err = capsys.readouterr()
    assert "HTTP error: 500" in err
    assert "Server酱推送成功" in out
    assert out.rstrip().endswith("监控服务已停止")