"""Subprocess runner with per-call-site timeout policies.

Every external tool (git, hg, jcheck, webrev) goes through :func:`run_command`.
Results are explicit values instead of exceptions::

    result = await run_command(["hg", "identify"], cwd=repo, policy=VCS_POLICY)
    if isinstance(result, Timeout): ...
    elif isinstance(result, ToolError): ...

:func:`expect_ok` turns a non-``Ok`` result into the matching exception for
call sites that have no business outcome to distinguish.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

import structlog

from mirrorbot.exceptions import SubprocessTimeoutError, ToolCommandError

log = structlog.get_logger("mirrorbot.process")


@dataclass(frozen=True)
class TimeoutPolicy:
    """Wall-clock budget for one kind of subprocess; the child is killed on expiry."""

    name: str
    seconds: float


VCS_POLICY = TimeoutPolicy("vcs", 30.0)
FETCH_POLICY = TimeoutPolicy("fetch", 300.0)
FORMAT_PATCH_POLICY = TimeoutPolicy("format-patch", 30.0)


@dataclass(frozen=True)
class Ok:
    output: str


@dataclass(frozen=True)
class Timeout:
    policy: TimeoutPolicy


@dataclass(frozen=True)
class ToolError:
    returncode: int | None  # None when the tool could not be started
    output: str


CommandResult = Ok | Timeout | ToolError


async def run_command(
    cmd: list[str],
    *,
    policy: TimeoutPolicy,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    stdin: str | None = None,
    merge_stderr: bool = False,
) -> CommandResult:
    """Run *cmd* and wait at most ``policy.seconds`` for it.

    *env* entries are layered over the current environment. With
    *merge_stderr* the returned output interleaves stderr the way a terminal
    would, which is what tool reports (jcheck, hg import) want; otherwise
    stdout is returned alone and stderr is only kept for :class:`ToolError`.
    """
    full_env = {**os.environ, **env} if env else None
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd else None,
            env=full_env,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT if merge_stderr else asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        log.warning("process.spawn_failed", cmd=cmd[0], error=str(exc))
        return ToolError(returncode=None, output=str(exc))

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(stdin.encode() if stdin is not None else None),
            timeout=policy.seconds,
        )
    except asyncio.TimeoutError:
        await _kill(proc)
        log.error("process.timeout", cmd=cmd[0], policy=policy.name, seconds=policy.seconds)
        return Timeout(policy)
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    output = stdout.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        err = stderr.decode("utf-8", errors="replace") if stderr else ""
        return ToolError(returncode=proc.returncode, output=output + err)
    return Ok(output)


def expect_ok(result: CommandResult, cmd: list[str]) -> str:
    """Return the output of an ``Ok`` result, raise for anything else."""
    if isinstance(result, Ok):
        return result.output
    if isinstance(result, Timeout):
        raise SubprocessTimeoutError(result.policy.name, result.policy.seconds)
    raise ToolCommandError(cmd, result.returncode, result.output)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
