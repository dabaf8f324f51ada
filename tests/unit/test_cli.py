from __future__ import annotations

import io

import pytest

from lokisink.cli import EXIT_CONFIG, EXIT_FLUSH_FAILED, EXIT_OK, main
from lokisink.testing import FakeLoki


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("LOKISINK_LOKI__URL", "LOKISINK_LOKI__TAGS"):
        monkeypatch.delenv(name, raising=False)


def test_push_batches_stdin_lines() -> None:
    fake = FakeLoki()
    stdin = io.BytesIO(b"one\ntwo\nthree\r\n")

    code = main(
        [
            "push",
            "--url",
            "loki://logs:3100/?UNSAFE_secure=false",
            "--tag",
            "service=cli",
            "--batch-lines",
            "2",
        ],
        stdin=stdin,
        client=fake.client(),
    )

    assert code == EXIT_OK
    assert [r.lines for r in fake.requests] == [["one", "two"], ["three"]]
    assert fake.requests[0].url == "http://logs:3100/loki/api/v1/push"
    assert fake.requests[0].streams[0]["stream"] == {"service": "cli"}


def test_push_uses_environment_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOKISINK_LOKI__URL", "loki://env-host")
    monkeypatch.setenv("LOKISINK_LOKI__TAGS", '{"service": "env", "team": "a"}')
    fake = FakeLoki()

    code = main(
        ["push", "--tag", "team=b"],
        stdin=io.BytesIO(b"hello\n"),
        client=fake.client(),
    )

    assert code == EXIT_OK
    assert fake.last.url == "https://env-host/loki/api/v1/push"
    assert fake.last.streams[0]["stream"] == {"service": "env", "team": "b"}


def test_empty_stdin_sends_nothing() -> None:
    fake = FakeLoki()

    code = main(
        ["push", "--url", "loki://logs"], stdin=io.BytesIO(b""), client=fake.client()
    )

    assert code == EXIT_OK
    assert fake.requests == []


def test_rejected_push_exits_with_failure(capsys: pytest.CaptureFixture[str]) -> None:
    fake = FakeLoki(status_code=400, body="entry too far behind")

    code = main(
        ["push", "--url", "loki://logs"], stdin=io.BytesIO(b"x\n"), client=fake.client()
    )

    assert code == EXIT_FLUSH_FAILED
    assert "entry too far behind" in capsys.readouterr().err


def test_missing_url_is_config_error(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["push"], stdin=io.BytesIO(b"x\n"))

    assert code == EXIT_CONFIG
    assert "no Loki URL" in capsys.readouterr().err


def test_bad_batch_size_is_config_error() -> None:
    assert main(["push", "--url", "loki://logs", "--batch-lines", "0"]) == EXIT_CONFIG


def test_bad_tag_is_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["push", "--url", "loki://logs", "--tag", "novalue"])

    assert excinfo.value.code == 2


@pytest.mark.parametrize("tags", ["not-json", '{"a": 1}'])
def test_malformed_environment_is_config_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tags: str
) -> None:
    monkeypatch.setenv("LOKISINK_LOKI__TAGS", tags)
    fake = FakeLoki()

    code = main(
        ["push", "--url", "loki://logs"],
        stdin=io.BytesIO(b"x\n"),
        client=fake.client(),
    )

    assert code == EXIT_CONFIG
    assert "Invalid LOKISINK_* settings" in capsys.readouterr().err
    assert fake.requests == []
