"""
Full path through real processes: fake `tofu` and `pulumi` scripts on a
private PATH, the real ProcessRunner, registry and dispatch engine.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path

from iac_tools.adapters import PulumiAdapter, TerraformAdapter
from iac_tools.dispatch import Dispatcher
from iac_tools.registry import AdapterRegistry
from iac_tools.runner import ProcessRunner
from tests.fakes import ECHO_ARGV_SCRIPT, make_fake_binary

MISSING_STACK_SCRIPT = """\
import sys
if sys.argv[1:2] == ["version"]:
    print("v3.130.0")
    sys.exit(0)
sys.stderr.write("error: no such stack 'ghost'\\n")
sys.exit(1)
"""

SLOW_SCRIPT = """\
import sys, time
if sys.argv[1:2] == ["version"]:
    print("OpenTofu v1.8.0")
    sys.exit(0)
time.sleep(30)
"""


class TestEndToEnd(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.bin_dir = self.tmp / "bin"
        self.bin_dir.mkdir()
        self.infra = self.tmp / "infra"
        self.infra.mkdir()
        self.search_path = str(self.bin_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def build(self, timeout: float = 20.0) -> Dispatcher:
        runner = ProcessRunner(timeout=timeout)
        registry = AdapterRegistry()
        registry.register_all([
            TerraformAdapter(runner=runner, search_path=self.search_path),
            PulumiAdapter(runner=runner, search_path=self.search_path),
        ])
        return Dispatcher(registry)

    def result_of(self, envelope) -> dict:
        self.assertFalse(envelope.is_error, envelope.text)
        return json.loads(envelope.text)

    def test_terraform_apply_argv_and_cwd(self):
        make_fake_binary(self.bin_dir, "tofu", ECHO_ARGV_SCRIPT)
        dispatcher = self.build()

        envelope = dispatcher.dispatch("terraform_apply", {
            "path": str(self.infra),
            "autoApprove": True,
            "vars": {"name": "web server; rm -rf /", "count": 2},
        })

        result = self.result_of(envelope)
        self.assertTrue(result["success"])
        self.assertEqual(result["exitCode"], 0)
        echoed = json.loads(result["output"])
        self.assertEqual(
            echoed["args"],
            ["apply", "-auto-approve", "-var=name=web server; rm -rf /", "-var=count=2"],
        )
        self.assertEqual(os.path.realpath(echoed["cwd"]), os.path.realpath(self.infra))
        self.assertEqual(echoed["stdin"], "")

    def test_pulumi_missing_stack_is_a_tool_failure(self):
        make_fake_binary(self.bin_dir, "pulumi", MISSING_STACK_SCRIPT)
        dispatcher = self.build()

        envelope = dispatcher.dispatch("pulumi_stack_select", {"stack": "ghost"})

        result = self.result_of(envelope)
        self.assertFalse(result["success"])
        self.assertEqual(result["exitCode"], 1)
        self.assertIn("no such stack", result["error"])

    def test_secret_travels_on_stdin_and_is_masked(self):
        make_fake_binary(self.bin_dir, "pulumi", ECHO_ARGV_SCRIPT)
        dispatcher = self.build()

        envelope = dispatcher.dispatch("pulumi_config_set", {
            "stack": "dev",
            "key": "dbPassword",
            "value": "hunter2-long-secret",
            "secret": True,
        })

        self.assertNotIn("hunter2-long-secret", envelope.text)
        echoed = json.loads(self.result_of(envelope)["output"])
        self.assertNotIn("***", echoed["args"])
        self.assertEqual(echoed["args"][-2:], ["--", "dbPassword"])
        self.assertEqual(echoed["stdin"], "***")

    def test_timeout_is_an_error_envelope(self):
        make_fake_binary(self.bin_dir, "tofu", SLOW_SCRIPT)
        dispatcher = self.build(timeout=0.5)

        envelope = dispatcher.dispatch("terraform_plan", {"path": str(self.infra)})

        self.assertTrue(envelope.is_error)
        self.assertIn("timed out", envelope.text)

    def test_only_installed_families_are_listed(self):
        make_fake_binary(self.bin_dir, "pulumi", ECHO_ARGV_SCRIPT)
        dispatcher = self.build()

        names = [tool["name"] for tool in dispatcher.list_tools()]
        self.assertTrue(names)
        self.assertTrue(all(name.startswith("pulumi_") for name in names))
        self.assertTrue(dispatcher.dispatch("terraform_plan", {"path": str(self.infra)}).is_error)


if __name__ == "__main__":
    unittest.main()
