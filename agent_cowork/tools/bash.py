"""Bash tool for executing commands in the working directory."""

import asyncio
import os
from typing import Any

from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import (
    Tool,
    ToolContext,
    ToolResult,
    is_blocked_shell_command,
)

log = get_logger(__name__)


class BashTool(Tool):
    """Execute shell commands."""

    name = "Bash"
    description = (
        "Execute a shell command in the working directory and return its output. "
        "Use for builds, tests, git and other command-line work."
    )
    # The command enforces its own timeout; this is only the executor backstop.
    timeout_seconds = 600.0
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "One sentence on why this command is run",
            },
            "command": {
                "type": "string",
                "description": "The shell command to execute",
            },
            "timeout": {
                "type": "number",
                "description": "Timeout in seconds (optional, default from config)",
            },
        },
        "required": ["command"],
    }

    @staticmethod
    def _check_command(command: str, blocked_patterns: list[str]) -> tuple[bool, str]:
        """Check if command is safe to execute.

        Returns:
            Tuple of (is_safe, reason)
        """
        blocked, matched = is_blocked_shell_command(command, blocked_patterns)
        if not blocked:
            return True, ""
        if matched == "empty_command":
            return False, "Command is empty"
        if matched == "unparseable_command":
            return False, "Command is not parseable"
        return False, f"Command matches blocked pattern: {matched}"

    async def execute(
        self,
        context: ToolContext,
        command: str,
        timeout: int | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        """Execute a shell command.

        Args:
            command: Shell command to execute
            timeout: Optional timeout override

        Returns:
            ToolResult with combined stdout/stderr
        """
        bash_cfg = context.config.tools.bash
        is_safe, reason = self._check_command(command, bash_cfg.blocked)
        if not is_safe:
            log.warning("Blocked unsafe command", command=command, reason=reason)
            return ToolResult(success=False, error=f"Command blocked: {reason}")

        if timeout is None:
            timeout = bash_cfg.timeout
        timeout = max(1, int(timeout))

        env = os.environ.copy()
        env["PATH"] = os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin")

        log.info("Executing shell command", command=command, timeout=timeout, cwd=str(context.cwd))
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(context.cwd),
            env=env,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return ToolResult(success=False, error=f"Command timed out after {timeout}s")
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        stdout_text = stdout.decode("utf-8", errors="replace").strip()
        stderr_text = stderr.decode("utf-8", errors="replace").strip()

        output = stdout_text
        if stderr_text:
            output += f"\n[stderr] {stderr_text}"
        output = output.strip()

        max_length = bash_cfg.max_output_chars
        if len(output) > max_length:
            output = output[:max_length] + f"\n... [truncated, {len(output)} total chars]"

        if process.returncode != 0:
            detail = output or "[no output]"
            return ToolResult(
                success=False,
                output=output,
                error=f"Command exited with code {process.returncode}\n{detail}",
            )
        return ToolResult(success=True, output=output or "[no output]")
