"""
Infracost CLI adapter for the MCP server.

- Builds argv deterministically from validated options (absent options add no flags)
- Runs the executable without a shell
- Bounds captured stdout/stderr; exceeding the bound is a failure, never a truncation
- Presence probe via ``infracost --version``
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any

from infracost_mcp.config import InfracostCliConfig
from infracost_mcp.envelope import CommandResult
from infracost_mcp.types import (
    BreakdownOptions,
    CommentOptions,
    DiffOptions,
    OutputOptions,
    UploadOptions,
)

logger = logging.getLogger("infracost-mcp.cli")

READ_CHUNK = 64 * 1024


class OutputLimitExceeded(Exception):
    """Raised when a stream produces more bytes than the configured ceiling."""

    def __init__(self, limit: int):
        super().__init__(f"Command output exceeded the maximum buffer size of {limit} bytes")
        self.limit = limit


def resolve_path(path: str) -> str:
    """Absolute form of a caller-supplied path."""
    return os.path.abspath(os.path.expanduser(path))


# --- argv builders (pure) ---


def breakdown_args(options: BreakdownOptions) -> list[str]:
    args = ["breakdown", "--path", resolve_path(options["path"])]

    if "format" in options:
        args += ["--format", options["format"]]
    if "outFile" in options:
        args += ["--out-file", resolve_path(options["outFile"])]
    for var_file in options.get("terraformVarFile", []):
        args += ["--terraform-var-file", resolve_path(var_file)]
    for key, value in options.get("terraformVar", {}).items():
        args += ["--terraform-var", f"{key}={value}"]

    return args


def diff_args(options: DiffOptions) -> list[str]:
    args = [
        "diff",
        "--path",
        resolve_path(options["path"]),
        "--compare-to",
        resolve_path(options["compareTo"]),
    ]

    if "format" in options:
        args += ["--format", options["format"]]
    if "outFile" in options:
        args += ["--out-file", resolve_path(options["outFile"])]

    return args


def output_args(options: OutputOptions) -> list[str]:
    args = ["output", "--path", resolve_path(options["path"])]

    if "format" in options:
        args += ["--format", options["format"]]
    if "outFile" in options:
        args += ["--out-file", resolve_path(options["outFile"])]
    if options.get("fields"):
        args += ["--fields", ",".join(options["fields"])]
    if options.get("showSkipped"):
        args.append("--show-skipped")

    return args


def upload_args(options: UploadOptions) -> list[str]:
    return ["upload", "--path", resolve_path(options["path"])]


def comment_args(options: CommentOptions) -> list[str]:
    args = ["comment", options["platform"], "--path", resolve_path(options["path"])]

    for key, flag in (
        ("repo", "--repo"),
        ("pullRequest", "--pull-request"),
        ("commit", "--commit"),
        ("tag", "--tag"),
        ("behavior", "--behavior"),
    ):
        if key in options:
            args += [flag, options[key]]  # type: ignore[literal-required]

    return args


# --- process execution ---


async def _read_bounded(stream: asyncio.StreamReader, limit: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise OutputLimitExceeded(limit)
        chunks.append(chunk)
    return b"".join(chunks)


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass


class InfracostCli:
    """Runs the infracost executable and normalizes its result into a CommandResult."""

    def __init__(self, config: InfracostCliConfig | None = None):
        self.config = config or InfracostCliConfig()

    @property
    def binary(self) -> str:
        return self.config.binary

    async def is_installed(self) -> bool:
        """Presence probe. Never raises: any failure means "not installed"."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                self.config.version_arg,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            return await proc.wait() == 0
        except Exception as e:
            logger.debug(f"{self.binary} presence probe failed: {e}")
            return False

    async def run(
        self,
        args: list[str],
        *,
        parse_json: bool = False,
        out_file: str | None = None,
    ) -> CommandResult:
        """
        Execute ``infracost <args>``.

        Args:
            args: Argument vector (without the binary)
            parse_json: Parse stdout into ``data`` (best effort)
            out_file: Caller's output file; replaces stdout in ``output``

        Returns:
            CommandResult. Spawn failures, nonzero exits and oversized
            output are failures carrying the process's own error text.
        """
        limit = self.config.max_output_bytes
        command = " ".join([self.binary, *args])
        logger.debug(f"Running: {command}")

        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            return CommandResult.fail(f"Failed to start {self.binary}: {e}")

        assert proc.stdout is not None and proc.stderr is not None
        readers = [
            asyncio.ensure_future(_read_bounded(proc.stdout, limit)),
            asyncio.ensure_future(_read_bounded(proc.stderr, limit)),
        ]
        try:
            raw_out, raw_err = await asyncio.gather(*readers)
        except OutputLimitExceeded as e:
            for reader in readers:
                reader.cancel()
            await asyncio.gather(*readers, return_exceptions=True)
            _kill(proc)
            await proc.wait()
            logger.warning(f"{command}: {e}")
            return CommandResult.fail(str(e))

        exit_code = await proc.wait()
        stdout = raw_out.decode("utf-8", errors="replace")
        stderr = raw_err.decode("utf-8", errors="replace")

        if exit_code != 0:
            detail = stderr.strip() or stdout.strip() or f"exit status {exit_code}"
            return CommandResult.fail(f"Command failed: {command}\n{detail}")

        if stderr.strip():
            logger.warning(f"{command} wrote to stderr: {stderr.strip()}")

        data: Any = None
        if parse_json and out_file is None and stdout.strip():
            try:
                data = json.loads(stdout)
            except ValueError:
                logger.debug(f"{command}: stdout is not valid JSON, returning text only")

        output = f"Output saved to {out_file}" if out_file is not None else stdout
        return CommandResult.ok(output=output, data=data)

    async def breakdown(self, options: BreakdownOptions) -> CommandResult:
        return await self.run(
            breakdown_args(options),
            parse_json=options.get("format") == "json",
            out_file=options.get("outFile"),
        )

    async def diff(self, options: DiffOptions) -> CommandResult:
        return await self.run(
            diff_args(options),
            parse_json=options.get("format") == "json",
            out_file=options.get("outFile"),
        )

    async def output(self, options: OutputOptions) -> CommandResult:
        return await self.run(
            output_args(options),
            parse_json=options.get("format") == "json",
            out_file=options.get("outFile"),
        )

    async def upload(self, options: UploadOptions) -> CommandResult:
        return await self.run(upload_args(options))

    async def comment(self, options: CommentOptions) -> CommandResult:
        return await self.run(comment_args(options))
