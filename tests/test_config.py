import os
import unittest
from pathlib import Path

from iac_tools.config import DEFAULT_ADAPTERS, ServerConfig


class TestServerConfig(unittest.TestCase):
    def test_defaults(self):
        config = ServerConfig.from_env({})
        self.assertEqual(config.adapters, DEFAULT_ADAPTERS)
        self.assertEqual(config.binary_mode, "preinstalled")
        self.assertEqual(config.timeout, 600.0)
        self.assertFalse(config.strict_tool_names)
        self.assertEqual(config.max_workers, 4)
        self.assertEqual(config.log_level, "INFO")
        self.assertIsNone(config.search_path({}))

    def test_reads_environment(self):
        config = ServerConfig.from_env({
            "IAC_TOOLS_ADAPTERS": " Pulumi , terraform ,",
            "IAC_TOOLS_TIMEOUT": "90",
            "IAC_TOOLS_STRICT_TOOL_NAMES": "yes",
            "IAC_TOOLS_MAX_WORKERS": "8",
            "IAC_TOOLS_LOG_LEVEL": "debug",
        })
        self.assertEqual(config.adapters, ["pulumi", "terraform"])
        self.assertEqual(config.timeout, 90.0)
        self.assertTrue(config.strict_tool_names)
        self.assertEqual(config.max_workers, 8)
        self.assertEqual(config.log_level, "DEBUG")

    def test_dynamic_mode_searches_bin_dir_first(self):
        config = ServerConfig.from_env({
            "IAC_TOOLS_BINARY_MODE": "dynamic",
            "IAC_TOOLS_BIN_DIR": "/opt/iac/bin",
        })
        self.assertEqual(config.bin_dir, Path("/opt/iac/bin"))
        search = config.search_path({"PATH": "/usr/bin"})
        self.assertEqual(search.split(os.pathsep), ["/opt/iac/bin", "/usr/bin"])

    def test_dynamic_mode_requires_bin_dir(self):
        with self.assertRaises(ValueError):
            ServerConfig.from_env({"IAC_TOOLS_BINARY_MODE": "dynamic"})

    def test_invalid_binary_mode(self):
        with self.assertRaises(ValueError):
            ServerConfig.from_env({"IAC_TOOLS_BINARY_MODE": "download"})

    def test_invalid_numbers_name_the_variable(self):
        with self.assertRaises(ValueError) as ctx:
            ServerConfig.from_env({"IAC_TOOLS_TIMEOUT": "soon"})
        self.assertIn("IAC_TOOLS_TIMEOUT", str(ctx.exception))
        with self.assertRaises(ValueError) as ctx:
            ServerConfig.from_env({"IAC_TOOLS_MAX_WORKERS": "0"})
        self.assertIn("IAC_TOOLS_MAX_WORKERS", str(ctx.exception))

    def test_zero_timeout_is_allowed(self):
        self.assertEqual(ServerConfig.from_env({"IAC_TOOLS_TIMEOUT": "0"}).timeout, 0.0)


if __name__ == "__main__":
    unittest.main()
