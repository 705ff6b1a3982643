"""
Terraform / OpenTofu adapter.

Both binaries share one command line, so a single adapter serves them.
OpenTofu is tried first as the FOSS alternative; Terraform is the
fallback.

Every tool runs with the configuration directory (`path`) as the
process working directory instead of passing it positionally, which
both binaries have deprecated for most sub-commands.
"""

from __future__ import annotations

from typing import Any, Mapping

from iac_tools.adapters.base import (
    Adapter,
    format_assignments,
    positional,
    require_directory,
)
from iac_tools.errors import InvalidArgument
from iac_tools.schema import ParameterSpec, ToolDefinition, ToolResult

PATH = ParameterSpec("string", "Path to the Terraform configuration directory", required=True)
AUTO_APPROVE = ParameterSpec("boolean", "Skip interactive approval", default=False)
VARS = ParameterSpec("object", "Variable values, one -var per entry")


class TerraformAdapter(Adapter):
    name = "terraform"
    description = "Terraform/OpenTofu Infrastructure as Code"
    binaries = ("tofu", "terraform")
    version_args = ("version",)

    def build_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="terraform_init",
                description="Initialize a Terraform/OpenTofu working directory",
                parameters={
                    "path": PATH,
                    "backend": ParameterSpec(
                        "boolean", "Configure the backend for this configuration", default=True
                    ),
                    "upgrade": ParameterSpec("boolean", "Upgrade modules and plugins", default=False),
                },
                handler=self.init,
            ),
            ToolDefinition(
                name="terraform_plan",
                description="Generate and show an execution plan",
                parameters={
                    "path": PATH,
                    "out": ParameterSpec("string", "Write plan to a file"),
                    "vars": VARS,
                },
                handler=self.plan,
            ),
            ToolDefinition(
                name="terraform_apply",
                description="Apply infrastructure changes",
                parameters={
                    "path": PATH,
                    "autoApprove": AUTO_APPROVE,
                    "planFile": ParameterSpec(
                        "string", "Saved plan file to apply, relative to path"
                    ),
                    "vars": VARS,
                },
                handler=self.apply,
            ),
            ToolDefinition(
                name="terraform_destroy",
                description="Destroy infrastructure managed by Terraform",
                parameters={
                    "path": PATH,
                    "autoApprove": AUTO_APPROVE,
                    "vars": VARS,
                },
                handler=self.destroy,
            ),
            ToolDefinition(
                name="terraform_output",
                description="Show output values from state",
                parameters={
                    "path": PATH,
                    "name": ParameterSpec("string", "Specific output to retrieve"),
                    "json": ParameterSpec("boolean", "Output in JSON format", default=True),
                },
                handler=self.output,
            ),
            ToolDefinition(
                name="terraform_state_list",
                description="List resources in the state",
                parameters={"path": PATH},
                handler=self.state_list,
            ),
            ToolDefinition(
                name="terraform_validate",
                description="Validate the configuration files",
                parameters={
                    "path": PATH,
                    "json": ParameterSpec("boolean", "Output in JSON format", default=False),
                },
                handler=self.validate,
            ),
            ToolDefinition(
                name="terraform_fmt",
                description="Format configuration files",
                parameters={
                    "path": PATH,
                    "check": ParameterSpec(
                        "boolean", "Check if files are formatted without modifying", default=False
                    ),
                    "recursive": ParameterSpec(
                        "boolean", "Also process files in subdirectories", default=False
                    ),
                },
                handler=self.fmt,
            ),
            ToolDefinition(
                name="terraform_version",
                description="Show the Terraform/OpenTofu version and provider versions",
                parameters={
                    "path": ParameterSpec("string", "Configuration directory for provider versions"),
                    "json": ParameterSpec("boolean", "Output in JSON format", default=False),
                },
                handler=self.version,
            ),
        ]

    # ── Handlers ───────────────────────────────────────────

    def init(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["init"]
        if not args.get("backend", True):
            argv.append("-backend=false")
        if args.get("upgrade"):
            argv.append("-upgrade")
        return self.run_binary(argv, cwd=cwd)

    def plan(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["plan"]
        if args.get("out"):
            argv.append(f"-out={args['out']}")
        argv.extend(format_assignments("-var=", args.get("vars")))
        return self.run_binary(argv, cwd=cwd)

    def apply(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["apply"]
        if args.get("autoApprove"):
            argv.append("-auto-approve")
        plan_file = args.get("planFile")
        if plan_file and args.get("vars"):
            # A saved plan already carries its variable values
            raise InvalidArgument("vars", "cannot be combined with planFile")
        argv.extend(format_assignments("-var=", args.get("vars")))
        if plan_file:
            argv.append(positional(plan_file, "planFile"))
        return self.run_binary(argv, cwd=cwd)

    def destroy(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["destroy"]
        if args.get("autoApprove"):
            argv.append("-auto-approve")
        argv.extend(format_assignments("-var=", args.get("vars")))
        return self.run_binary(argv, cwd=cwd)

    def output(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["output"]
        if args.get("json", True):
            argv.append("-json")
        if args.get("name"):
            argv.append(positional(args["name"], "name"))
        return self.run_binary(argv, cwd=cwd)

    def state_list(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        return self.run_binary(["state", "list"], cwd=cwd)

    def validate(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["validate"]
        if args.get("json"):
            argv.append("-json")
        return self.run_binary(argv, cwd=cwd)

    def fmt(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["fmt"]
        if args.get("check"):
            argv.append("-check")
        if args.get("recursive"):
            argv.append("-recursive")
        return self.run_binary(argv, cwd=cwd)

    def version(self, args: Mapping[str, Any]) -> ToolResult:
        self.ensure_connected()
        cwd = require_directory(args, "path")
        argv = ["version"]
        if args.get("json"):
            argv.append("-json")
        return self.run_binary(argv, cwd=cwd)
