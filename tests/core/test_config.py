import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from hostinfo.config import (
    CONFIG_ENV,
    DaemonConfig,
    config_from_mapping,
    load_config,
    resolve_config_path,
)
from hostinfo.errors import ConfigError


class LoadConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, content: str) -> Path:
        path = self.root / "hostinfo.yaml"
        path.write_text(content, encoding="utf-8")
        return path

    def test_yaml_values_are_applied(self):
        path = self._write(
            "id: 'ABCD:EFGH'\n"
            "debug: true\n"
            "labels:\n  - env=prod\n  - rack=7\n"
            "runtime_binary: /usr/local/bin/runc\n"
            "runtimes:\n  custom: /opt/custom-runtime\n"
            "seccomp_profile: /etc/seccomp.json\n"
            "userns_remap: '100000:100000'\n"
        )
        config = load_config(path)
        self.assertEqual(config.id, "ABCD:EFGH")
        self.assertTrue(config.debug)
        self.assertEqual(config.labels, ["env=prod", "rack=7"])
        self.assertEqual(config.seccomp_profile, "/etc/seccomp.json")
        self.assertEqual(config.userns_remap, "100000:100000")
        self.assertEqual(
            config.get_all_runtimes(),
            {"custom": "/opt/custom-runtime", "runc": "/usr/local/bin/runc"},
        )

    def test_missing_file_gives_defaults(self):
        self.assertEqual(load_config(self.root / "absent.yaml"), DaemonConfig())

    def test_empty_file_gives_defaults(self):
        self.assertEqual(load_config(self._write("")), DaemonConfig())

    def test_malformed_yaml(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(self._write("labels: [unterminated\n"))
        self.assertIn("hostinfo.yaml", str(ctx.exception))

    def test_top_level_must_be_mapping(self):
        with self.assertRaises(ConfigError):
            load_config(self._write("- debug\n- experimental\n"))


class ConfigFromMappingTests(unittest.TestCase):
    def test_wrong_types_are_rejected(self):
        cases = {
            "debug": "yes please",
            "labels": "env=prod",
            "runtimes": ["runc"],
            "root": ["/var/lib"],
        }
        for key, value in cases.items():
            with self.subTest(key=key):
                with self.assertRaises(ConfigError):
                    config_from_mapping({key: value})

    def test_unknown_key_is_ignored_with_warning(self):
        with self.assertLogs("hostinfo.config", level="WARNING") as logs:
            config = config_from_mapping({"graph": "/srv/docker"}, source="test.yaml")
        self.assertEqual(config, DaemonConfig())
        self.assertIn("graph", logs.output[0])

    def test_null_string_becomes_empty(self):
        self.assertEqual(config_from_mapping({"cluster_store": None}).cluster_store, "")

    def test_userns_remap_validation(self):
        for remap in ("1000", "1000:2000", ""):
            with self.subTest(remap=remap):
                self.assertEqual(config_from_mapping({"userns_remap": remap}).userns_remap, remap)
        for remap in ("dockremap", "1000:", "-1"):
            with self.subTest(remap=remap):
                with self.assertRaises(ConfigError):
                    config_from_mapping({"userns_remap": remap})

    def test_runtime_defaults(self):
        config = DaemonConfig()
        self.assertEqual(config.get_all_runtimes(), {"runc": "docker-runc"})
        self.assertEqual(config.get_default_runtime_name(), "runc")
        self.assertEqual(config.get_init_path(), "docker-init")

    def test_configured_runc_entry_is_kept(self):
        config = DaemonConfig(runtimes={"runc": "/opt/runc"}, runtime_binary="/usr/bin/runc")
        self.assertEqual(config.get_all_runtimes(), {"runc": "/opt/runc"})


class ResolveConfigPathTests(unittest.TestCase):
    def test_explicit_path_wins(self):
        with mock.patch.dict(os.environ, {CONFIG_ENV: "/etc/from-env.yaml"}):
            self.assertEqual(resolve_config_path("/etc/explicit.yaml"), Path("/etc/explicit.yaml"))

    def test_environment_fallback(self):
        with mock.patch.dict(os.environ, {CONFIG_ENV: "/etc/from-env.yaml"}):
            self.assertEqual(resolve_config_path(), Path("/etc/from-env.yaml"))

    def test_nothing_configured(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(resolve_config_path())


if __name__ == "__main__":
    unittest.main()
