"""
Pulumi adapter.

Every operation targets a named stack and is passed as one joined
`--stack=<name>` token. The Pulumi project directory is optional and,
when given, becomes the working directory of the process.

Configuration values are never placed where they could leak:
    - a secret value goes to the process stdin, not the argument vector
    - a secret value is masked as *** in logs and in the normalized result
    - `config get` masks values Pulumi reports as secret
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from iac_tools.adapters.base import Adapter, positional, require_directory, require_value
from iac_tools.errors import InvalidArgument
from iac_tools.schema import ParameterSpec, ToolDefinition, ToolResult

STACK = ParameterSpec("string", "Name of the stack to operate on", required=True)
CWD = ParameterSpec("string", "Path to the Pulumi project directory")
AUTO_APPROVE = ParameterSpec("boolean", "Skip the confirmation prompt (--yes)", default=False)
CONFIG_PATH = ParameterSpec(
    "boolean", "Treat the key as a property path into nested configuration", default=False
)


def _stack_flag(args: Mapping[str, Any]) -> str:
    return f"--stack={require_value(args, 'stack')}"


class PulumiAdapter(Adapter):
    name = "pulumi"
    description = "Pulumi multi-language Infrastructure as Code"
    binaries = ("pulumi",)
    version_args = ("version",)

    def build_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="pulumi_stack_list",
                description="List the stacks of the current project",
                parameters={
                    "cwd": CWD,
                    "json": ParameterSpec("boolean", "Output in JSON format", default=True),
                },
                handler=self.stack_list,
            ),
            ToolDefinition(
                name="pulumi_stack_init",
                description="Create a new stack",
                parameters={"stack": STACK, "cwd": CWD},
                handler=self.stack_init,
            ),
            ToolDefinition(
                name="pulumi_stack_select",
                description="Make a stack the current stack",
                parameters={"stack": STACK, "cwd": CWD},
                handler=self.stack_select,
            ),
            ToolDefinition(
                name="pulumi_preview",
                description="Preview the changes an update would make",
                parameters={
                    "stack": STACK,
                    "cwd": CWD,
                    "diff": ParameterSpec("boolean", "Show a detailed diff", default=False),
                },
                handler=self.preview,
            ),
            ToolDefinition(
                name="pulumi_up",
                description="Create or update the resources in a stack",
                parameters={"stack": STACK, "cwd": CWD, "autoApprove": AUTO_APPROVE},
                handler=self.up,
            ),
            ToolDefinition(
                name="pulumi_destroy",
                description="Destroy all resources in a stack",
                parameters={"stack": STACK, "cwd": CWD, "autoApprove": AUTO_APPROVE},
                handler=self.destroy,
            ),
            ToolDefinition(
                name="pulumi_refresh",
                description="Refresh the stack state from the cloud provider",
                parameters={"stack": STACK, "cwd": CWD, "autoApprove": AUTO_APPROVE},
                handler=self.refresh,
            ),
            ToolDefinition(
                name="pulumi_stack_output",
                description="Show the stack's output properties",
                parameters={
                    "stack": STACK,
                    "cwd": CWD,
                    "name": ParameterSpec("string", "Specific output to retrieve"),
                },
                handler=self.stack_output,
            ),
            ToolDefinition(
                name="pulumi_config_get",
                description="Get a single configuration value",
                parameters={
                    "stack": STACK,
                    "key": ParameterSpec("string", "Configuration key", required=True),
                    "cwd": CWD,
                    "path": CONFIG_PATH,
                },
                handler=self.config_get,
            ),
            ToolDefinition(
                name="pulumi_config_set",
                description="Set a configuration value, optionally encrypted as a secret",
                parameters={
                    "stack": STACK,
                    "key": ParameterSpec("string", "Configuration key", required=True),
                    "value": ParameterSpec("string", "Configuration value", required=True),
                    "cwd": CWD,
                    "path": CONFIG_PATH,
                    "secret": ParameterSpec(
                        "boolean", "Encrypt the value as a secret", default=False
                    ),
                },
                handler=self.config_set,
            ),
            ToolDefinition(
                name="pulumi_version",
                description="Show the Pulumi CLI version",
                parameters={},
                handler=self.version,
            ),
        ]

    # ── Handlers ───────────────────────────────────────────

    def stack_list(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        argv = ["stack", "ls"]
        if args.get("json", True):
            argv.append("--json")
        return self.run_binary(argv, cwd=cwd)

    def stack_init(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        return self.run_binary(["stack", "init", _stack_flag(args)], cwd=cwd)

    def stack_select(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        return self.run_binary(["stack", "select", _stack_flag(args)], cwd=cwd)

    def preview(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        argv = ["preview", _stack_flag(args)]
        if args.get("diff"):
            argv.append("--diff")
        return self.run_binary(argv, cwd=cwd)

    def up(self, args: Mapping[str, Any]) -> ToolResult:
        return self._update("up", args)

    def destroy(self, args: Mapping[str, Any]) -> ToolResult:
        return self._update("destroy", args)

    def refresh(self, args: Mapping[str, Any]) -> ToolResult:
        return self._update("refresh", args)

    def _update(self, command: str, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        argv = [command, _stack_flag(args)]
        if args.get("autoApprove"):
            argv.append("--yes")
        return self.run_binary(argv, cwd=cwd)

    def stack_output(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        # Secret outputs stay masked: --show-secrets is never passed
        argv = ["stack", "output", _stack_flag(args), "--json"]
        if args.get("name"):
            argv.append(positional(args["name"], "name"))
        return self.run_binary(argv, cwd=cwd)

    def config_get(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        key = require_value(args, "key")
        argv = ["config", "get", _stack_flag(args), "--json"]
        if args.get("path"):
            argv.append("--path")
        argv.extend(["--", key])
        return _mask_secret_value(self.run_binary(argv, cwd=cwd))

    def config_set(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "cwd")
        key = require_value(args, "key")
        value = args.get("value")
        if value is None:
            raise InvalidArgument("value", "a value is required")

        argv = ["config", "set", _stack_flag(args)]
        if args.get("path"):
            argv.append("--path")
        if args.get("secret"):
            # Read from stdin: the value never shows up in the process table
            argv.extend(["--secret", "--", key])
            return self.run_binary(argv, cwd=cwd, stdin_text=value, secrets=[value])

        argv.extend(["--", key, value])
        return self.run_binary(argv, cwd=cwd)

    def version(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        return self.run_binary(["version"])


def _mask_secret_value(result: ToolResult) -> ToolResult:
    """Replace the value of a `config get --json` payload flagged secret."""
    if not result.success:
        return result
    try:
        payload = json.loads(result.output)
    except ValueError:
        return result
    if not isinstance(payload, dict) or not payload.get("secret"):
        return result

    payload["value"] = "***"
    if "objectValue" in payload:
        payload["objectValue"] = "***"
    return ToolResult(
        success=result.success,
        output=json.dumps(payload, indent=2),
        error=result.error,
        exit_code=result.exit_code,
    )
