#!/usr/bin/env python3
"""
Launcher that keeps the MCP stdout channel clean.

Runs the AgentLink server as a child process with stdin and stderr inherited
and stdout piped. Only lines that are JSON-RPC 2.0 messages are copied to our
stdout; anything else a dependency prints there is logged to stderr instead.
SIGINT and SIGTERM are forwarded to the child, and the launcher exits with the
child's exit code (128 + N when the child died from signal N).
"""

from __future__ import annotations

import json
import logging
import os
import signal
import subprocess
import sys
from typing import IO, Any, Iterable, Mapping, Sequence

from agentlink_logging import configure_logging

logger = logging.getLogger(__name__)

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

SERVER_MODULE = "agentlink_mcp_server"


def is_protocol_message(line: bytes | str) -> bool:
    """True when `line` is a JSON object with "jsonrpc": "2.0"."""
    text = line.decode("utf-8", errors="replace") if isinstance(line, bytes) else line
    text = text.strip()
    if not text.startswith("{"):
        return False
    try:
        message = json.loads(text)
    except ValueError:
        return False
    return isinstance(message, dict) and message.get("jsonrpc") == "2.0"


def filter_stream(source: Iterable[bytes], sink: IO[bytes]) -> int:
    """Copy protocol lines from `source` to `sink`; return how many were copied."""
    forwarded = 0
    for line in source:
        if is_protocol_message(line):
            if not line.endswith(b"\n"):
                line += b"\n"
            sink.write(line)
            sink.flush()
            forwarded += 1
        elif line.strip():
            logger.warning(
                "Filtered non-JSON-RPC output: %s",
                line.decode("utf-8", errors="replace").rstrip(),
            )
    return forwarded


def exit_code_for(returncode: int) -> int:
    # Popen reports death by signal N as -N
    if returncode < 0:
        return 128 - returncode
    return returncode


def child_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ if base is None else base)
    env.update({"NO_COLOR": "true", "FORCE_COLOR": "0", "TERM": "dumb"})
    return env


def run_filtered(
    command: Sequence[str],
    stdout: IO[bytes] | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run `command`, filter its stdout into `stdout` and return the exit code."""
    sink = stdout if stdout is not None else sys.stdout.buffer
    proc = subprocess.Popen(
        list(command),
        stdout=subprocess.PIPE,
        env=child_environment(env),
    )

    def _forward(signum: int, _frame: Any) -> None:
        logger.info("Forwarding signal %s to server process %s", signum, proc.pid)
        if proc.poll() is None:
            proc.send_signal(signum)

    previous = {}
    for sig in FORWARDED_SIGNALS:
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, _forward)

    try:
        with proc.stdout:
            filter_stream(proc.stdout, sink)
        returncode = proc.wait()
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    code = exit_code_for(returncode)
    if code != 0:
        logger.error("Server process exited with code %s", code)
    return code


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    args = list(sys.argv[1:] if argv is None else argv)
    command = args or [sys.executable, "-m", SERVER_MODULE]
    logger.info("Starting MCP server: %s", " ".join(command))
    try:
        return run_filtered(command)
    except OSError as exc:
        logger.error("Failed to start MCP server: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
