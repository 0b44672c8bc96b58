# lqnotice

`lqnotice` watches a JSON news feed for a notice whose title holds every one
of a set of keywords. When it finds one, it e-mails each recipient. It can also
send a push message through Server Chan. Then it stops.

## Installation

```
pip install .
```

To run the test suite, install the `test` extra:

```
pip install ".[test]"
pytest
```

## Configuration

By default the `lqnotice` command reads `config/settings.json`, relative to
the current directory. Use `-c PATH` or `--config PATH` to name another file:

```json
{
  "check_interval": 300,
  "target_url": "https://example.com/api/news.json",
  "trigger_keywords": ["final", "results"],
  "recipients": ["alice@example.com", "bob@example.com"],
  "smtp": {
    "server": "smtp.example.com",
    "port": 465,
    "username": "monitor@example.com",
    "password": "password",
    "security": "ssl"
  },
  "server_chan": {
    "enabled": false,
    "uid": "uid",
    "sendkey": "placeholder"
  }
}
```

- Every top-level field is required except `server_chan`. So is every `smtp`
  field. Each field must have the type shown above. A missing file, bad JSON,
  a missing field or a wrong type raises `lqnotice.monitor.ConfigError`.
- `check_interval` is the number of seconds between checks. The wait runs in
  10-second steps, so it rounds up to a multiple of 10 seconds. After each
  whole minute it prints a note.
- Every word in `trigger_keywords` must appear in a notice title. ASCII case is
  ignored. An empty list matches every notice.
- `smtp.security` turns on implicit TLS, with certificate checks, when it is
  `"ssl"` or `"tls"`. Any other value uses a plain SMTP connection. The
  `username` is used as the sender address. When it is not empty, it is also
  used to log in.
- `server_chan` is optional. If it is missing, push messages are off. Each of
  its keys is optional too: `enabled` defaults to `false`, and `uid` and
  `sendkey` default to empty strings.

The feed must be a JSON object with a `datalist` array. Items count only if
they have a string `title`. An item may also have `creatTime` (UTC,
`YYYY-MM-DDTHH:MM:SS`), `programaName`, `synopsis` and a numeric `nnid`.
Matching notices are sorted by `creatTime`, newest first. Times are shown in
Beijing time (UTC+8).

## Running

```
lqnotice
lqnotice --config path/to/settings.json
```

First the command prints what it is watching. Then it fetches the feed again
and again. A failed fetch, a status other than 200, or a body that is not JSON
is reported, and the feed is tried again at the next check. When a notice
matches, the command:

1. sends one e-mail to each recipient, and
2. sends a Server Chan push if `server_chan.enabled` is true.

After that it exits with status 0. If the configuration cannot be loaded, it
prints the error and exits with status 1.

## Library use

You can call the same steps from Python:

```python
from lqnotice.fetcher import FetchError, fetch_json
from lqnotice.monitor import check_for_trigger, generate_email_content, load_config

config = load_config("config/settings.json")
try:
    data = fetch_json(config.target_url)
except FetchError as exc:
    print(exc)
else:
    items = check_for_trigger(data, config.trigger_keywords)
    if items:
        print(generate_email_content(items, config.trigger_keywords))
```

Other public names:

- `lqnotice.mailer`
  - `SmtpConfig`
  - `build_email_header`
  - `build_email`
  - `send_mail`: sends to one address or a list of addresses. It raises
    `MailError` if the send fails.
- `lqnotice.monitor`
  - `contains_all_keywords`
  - `utc_to_beijing_time`
  - `generate_server_chan_content`
  - `send_server_chan`: returns `True` only when the service replies with
    `"message": "SUCCESS"`.
  - `run`: starts the full monitoring loop.
- `lqnotice.cli.main`: the command's entry point.

## Limits

The monitor keeps no record between runs. Each run stops after its first
alert, and a new run alerts again on the same notices. Mail is plain text
only.