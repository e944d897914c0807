import tempfile
import unittest
from pathlib import Path

from hostinfo.errors import ProbeError
from hostinfo.model import ResourceLimits, SysInfo
from hostinfo.sysinfo import probe_sysinfo


class SysInfoProbeTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.sys_root = root / "sys"
        self.proc_root = root / "proc"
        self.sys_root.mkdir()
        self.proc_root.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _touch(self, base: Path, relative: str, content: str = "") -> None:
        path = base / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def _security_modules(self) -> None:
        (self.sys_root / "kernel" / "security" / "apparmor").mkdir(parents=True)
        self._touch(self.sys_root, "module/apparmor/parameters/enabled", "Y\n")
        self._touch(self.sys_root, "fs/selinux/enforce", "1\n")
        self._touch(self.proc_root, "self/status", "Name:\tpython\nSeccomp:\t0\n")

    def test_empty_host_detects_nothing(self):
        info = probe_sysinfo(self.sys_root, self.proc_root)
        self.assertEqual(info.security_capabilities(), ())
        self.assertEqual(ResourceLimits.from_sysinfo(info), ResourceLimits())
        self.assertTrue(info.ipv4_forwarding_disabled)
        self.assertTrue(info.bridge_nf_call_iptables_disabled)

    def test_security_modules_in_fixed_order(self):
        self._security_modules()
        info = probe_sysinfo(self.sys_root, self.proc_root)
        self.assertEqual(info.security_capabilities(), ("apparmor", "seccomp", "selinux"))

    def test_apparmor_disabled_by_parameter(self):
        self._security_modules()
        self._touch(self.sys_root, "module/apparmor/parameters/enabled", "N\n")
        self.assertFalse(probe_sysinfo(self.sys_root, self.proc_root).apparmor)

    def test_cgroup_v1_hierarchy(self):
        cgroup = "fs/cgroup"
        for relative in (
            "memory/memory.limit_in_bytes",
            "memory/memory.memsw.limit_in_bytes",
            "memory/memory.oom_control",
            "cpu/cpu.cfs_period_us",
            "cpu/cpu.cfs_quota_us",
            "cpu/cpu.shares",
            "cpuset/cpuset.cpus",
            "cpuset/cpuset.mems",
        ):
            self._touch(self.sys_root, f"{cgroup}/{relative}", "0\n")
        info = probe_sysinfo(self.sys_root, self.proc_root)
        self.assertEqual(
            ResourceLimits.from_sysinfo(info),
            ResourceLimits(
                memory_limit=True,
                swap_limit=True,
                kernel_memory=False,
                oom_kill_disable=True,
                cpu_cfs_period=True,
                cpu_cfs_quota=True,
                cpu_shares=True,
                cpuset=True,
            ),
        )

    def test_cgroup_v2_controllers(self):
        self._touch(self.sys_root, "fs/cgroup/cgroup.controllers", "cpuset cpu io memory pids\n")
        info = probe_sysinfo(self.sys_root, self.proc_root)
        self.assertTrue(info.memory_limit)
        self.assertTrue(info.cpu_shares)
        self.assertTrue(info.cpuset)
        self.assertFalse(info.kernel_memory)
        self.assertFalse(info.oom_kill_disable)

    def test_forwarding_flags(self):
        self._touch(self.proc_root, "sys/net/ipv4/ip_forward", "1\n")
        self._touch(self.proc_root, "sys/net/bridge/bridge-nf-call-iptables", "1\n")
        self._touch(self.proc_root, "sys/net/bridge/bridge-nf-call-ip6tables", "0\n")
        info = probe_sysinfo(self.sys_root, self.proc_root)
        self.assertFalse(info.ipv4_forwarding_disabled)
        self.assertFalse(info.bridge_nf_call_iptables_disabled)
        self.assertTrue(info.bridge_nf_call_ip6tables_disabled)

    def test_missing_pseudo_filesystems(self):
        with self.assertRaises(ProbeError):
            probe_sysinfo(self.sys_root / "absent", self.proc_root)

    def test_zero_value_is_the_placeholder(self):
        self.assertEqual(SysInfo().security_capabilities(), ())


if __name__ == "__main__":
    unittest.main()
