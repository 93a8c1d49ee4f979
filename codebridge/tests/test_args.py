import pytest

from codebridge.args import Arguments


def test_no_args():
    args = Arguments.parse([])

    assert args.host is None
    assert args.port is None
    assert args.workers is None
    assert args.config == "~/.codebridge/config"
    assert not args.debug


def test_basic_usage():
    args = Arguments.parse(
        ["--host", "0.0.0.0", "--port", "4000", "--workers", "2", "--debug"]
    )

    assert args.host == "0.0.0.0"
    assert args.port == 4000
    assert args.workers == 2
    assert args.debug


def test_config_path():
    args = Arguments.parse(["--config=/etc/codebridge.conf"])

    assert args.config == "/etc/codebridge.conf"


@pytest.mark.parametrize("port", ["0", "65536", "-1", "abc"])
def test_invalid_port(port):
    with pytest.raises(SystemExit):
        Arguments.parse([f"--port={port}"])


@pytest.mark.parametrize("workers", ["0", "-2", "many"])
def test_invalid_workers(workers):
    with pytest.raises(SystemExit):
        Arguments.parse([f"--workers={workers}"])


def test_unexpected_positional_argument():
    with pytest.raises(SystemExit):
        Arguments.parse(["serve"])


def test_version(capsys):
    with pytest.raises(SystemExit):
        Arguments.parse(["--version"])

    assert "protocol" in capsys.readouterr().out
