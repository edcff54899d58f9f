import io
import json
import os
import signal
import subprocess
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT))

import mcp_startup  # noqa: E402
from mcp_startup import (  # noqa: E402
    child_environment,
    exit_code_for,
    filter_stream,
    is_protocol_message,
    run_filtered,
)


def test_is_protocol_message():
    assert is_protocol_message(b'{"jsonrpc":"2.0","id":1,"result":{}}\n')
    assert is_protocol_message('{"jsonrpc": "2.0", "method": "ping"}')
    assert not is_protocol_message(b'{"jsonrpc":"1.0"}')
    assert not is_protocol_message(b"Starting server... jsonrpc 2.0")
    assert not is_protocol_message(b'["jsonrpc","2.0"]')
    assert not is_protocol_message(b"{broken")


def test_filter_stream_drops_noise(caplog):
    source = [
        b"\x1b[32minfo\x1b[0m: loading\n",
        b'{"jsonrpc":"2.0","id":1,"result":{}}\n',
        b"\n",
        b'{"jsonrpc":"2.0","method":"notifications/initialized"}',
    ]
    sink = io.BytesIO()

    with caplog.at_level("WARNING", logger="mcp_startup"):
        forwarded = filter_stream(source, sink)

    assert forwarded == 2
    assert sink.getvalue() == (
        b'{"jsonrpc":"2.0","id":1,"result":{}}\n'
        b'{"jsonrpc":"2.0","method":"notifications/initialized"}\n'
    )
    assert "loading" in caplog.text


def test_exit_code_for_signals():
    assert exit_code_for(0) == 0
    assert exit_code_for(3) == 3
    assert exit_code_for(-15) == 143
    assert exit_code_for(-2) == 130


def test_child_environment_disables_colors():
    env = child_environment({"PATH": "/bin", "TERM": "xterm-256color"})

    assert env["PATH"] == "/bin"
    assert env["NO_COLOR"] == "true"
    assert env["FORCE_COLOR"] == "0"
    assert env["TERM"] == "dumb"


def test_run_filtered_forwards_only_protocol_lines():
    script = (
        "import sys\n"
        "print('banner')\n"
        "print('{\"jsonrpc\": \"2.0\", \"id\": 7, \"result\": {}}')\n"
        "sys.exit(3)\n"
    )
    sink = io.BytesIO()

    code = run_filtered([sys.executable, "-c", script], stdout=sink)

    assert code == 3
    assert sink.getvalue() == b'{"jsonrpc": "2.0", "id": 7, "result": {}}\n'


def test_main_reports_launch_failure(monkeypatch):
    def fail(command):
        raise FileNotFoundError("no such file")

    monkeypatch.setattr(mcp_startup, "run_filtered", fail)
    assert mcp_startup.main(["definitely-not-a-binary"]) == 1


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
@pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
def test_launcher_forwards_signal_and_exits_0(sig):
    env = {k: v for k, v in os.environ.items() if k != "LOG_DIR"}
    env["WALLET_PUBLIC_KEY"] = "Wallet111"
    env["LOG_LEVEL"] = "WARNING"
    proc = subprocess.Popen(
        [sys.executable, "-m", "mcp_startup"],
        cwd=str(REPO_ROOT),
        env=env,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    try:
        proc.stdin.write(
            b'{"jsonrpc":"2.0","id":1,"method":"initialize","params":{'
            b'"protocolVersion":"2025-06-18","capabilities":{},'
            b'"clientInfo":{"name":"pytest","version":"0"}}}\n'
        )
        proc.stdin.flush()
        response = json.loads(proc.stdout.readline())
        assert response["id"] == 1

        proc.send_signal(sig)
        proc.communicate(timeout=20)
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()

    assert proc.returncode == 0
