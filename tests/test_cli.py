import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from iac_tools.cli import build_parser, load_config, main
from tests.fakes import ECHO_ARGV_SCRIPT, StubAdapter, make_fake_binary


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.bin_dir = self.tmp / "bin"
        self.bin_dir.mkdir()
        self.infra = self.tmp / "infra"
        self.infra.mkdir()

        env = {"PATH": str(self.bin_dir)}
        self._env = patch.dict(os.environ, env, clear=True)
        self._env.start()

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def run_main(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_flags_before_and_after_the_command(self):
        parser = build_parser()
        config = load_config(parser.parse_args(["--timeout", "30", "list", "--adapters", "pulumi"]))
        self.assertEqual(config.timeout, 30.0)
        self.assertEqual(config.adapters, ["pulumi"])

    def test_environment_is_the_base_layer(self):
        os.environ["IAC_TOOLS_TIMEOUT"] = "45"
        config = load_config(build_parser().parse_args(["status", "--strict"]))
        self.assertEqual(config.timeout, 45.0)
        self.assertTrue(config.strict_tool_names)

    def test_list_prints_connected_tools(self):
        make_fake_binary(self.bin_dir, "tofu", ECHO_ARGV_SCRIPT)
        code, out, _ = self.run_main("list")
        self.assertEqual(code, 0)
        names = [tool["name"] for tool in json.loads(out)]
        self.assertIn("terraform_plan", names)
        self.assertFalse(any(name.startswith("pulumi_") for name in names))

    def test_call_runs_in_the_requested_directory(self):
        make_fake_binary(self.bin_dir, "tofu", ECHO_ARGV_SCRIPT)
        code, out, _ = self.run_main(
            "call", "terraform_plan",
            "--args", json.dumps({"path": str(self.infra), "vars": {"region": "eu-west-1"}}),
            "--adapters", "terraform",
        )
        self.assertEqual(code, 0)
        envelope = json.loads(out)
        self.assertFalse(envelope["isError"])
        result = json.loads(envelope["content"][0]["text"])
        self.assertTrue(result["success"])
        echoed = json.loads(result["output"])
        self.assertEqual(echoed["args"], ["plan", "-var=region=eu-west-1"])
        self.assertEqual(os.path.realpath(echoed["cwd"]), os.path.realpath(self.infra))

    def test_call_error_envelope_exits_non_zero(self):
        make_fake_binary(self.bin_dir, "tofu", ECHO_ARGV_SCRIPT)
        code, out, _ = self.run_main("call", "terraform_plan", "--args", "{}")
        self.assertEqual(code, 1)
        self.assertTrue(json.loads(out)["isError"])

    def test_call_with_bad_json(self):
        code, _, err = self.run_main("call", "terraform_plan", "--args", "{oops")
        self.assertEqual(code, 2)
        self.assertIn("--args", err)

    def test_status_reports_failures(self):
        make_fake_binary(self.bin_dir, "tofu", ECHO_ARGV_SCRIPT)
        code, out, _ = self.run_main("status")
        self.assertEqual(code, 0)
        status = json.loads(out)
        states = {a["name"]: a["state"] for a in status["adapters"]}
        self.assertEqual(states, {"terraform": "connected", "pulumi": "failed"})
        self.assertEqual(status["report"]["connected"], ["terraform"])
        self.assertIn("pulumi", status["report"]["failed"])

    def test_serve_without_any_adapter_exits_1(self):
        code, _, err = self.run_main("serve")
        self.assertEqual(code, 1)
        self.assertIn("no adapter could connect", err)

    def test_strict_collision_exits_1_and_disconnects(self):
        for argv, strict_env in ((["list", "--strict"], None), (["list"], "1")):
            first = StubAdapter("first", ["shared_tool"])
            second = StubAdapter("second", ["shared_tool"])
            if strict_env:
                os.environ["IAC_TOOLS_STRICT_TOOL_NAMES"] = strict_env
            with patch("iac_tools.cli.build_adapters", return_value=[first, second]):
                code, out, err = self.run_main(*argv)
            os.environ.pop("IAC_TOOLS_STRICT_TOOL_NAMES", None)

            self.assertEqual(code, 1)
            self.assertEqual(out, "")
            self.assertIn("shared_tool", err)
            self.assertFalse(first.is_connected)
            self.assertFalse(second.is_connected)

    def test_configuration_error_exits_2(self):
        code, _, err = self.run_main("list", "--binary-mode", "dynamic")
        self.assertEqual(code, 2)
        self.assertIn("Configuration error", err)

    def test_dynamic_mode_finds_binaries_in_bin_dir(self):
        extra = self.tmp / "managed"
        extra.mkdir()
        make_fake_binary(extra, "pulumi", ECHO_ARGV_SCRIPT)
        code, out, _ = self.run_main(
            "list", "--binary-mode", "dynamic", "--bin-dir", str(extra),
        )
        self.assertEqual(code, 0)
        names = [tool["name"] for tool in json.loads(out)]
        self.assertIn("pulumi_up", names)


if __name__ == "__main__":
    unittest.main()
