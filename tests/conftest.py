from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from pipeline.config import ToolchainConfig
from schemas.build import ToolInvocation
from tools.base import ToolResult

MANIFEST_TEXT = "Manifest-Version: 1.0\nPremain-Class: org.aspectj.weaver.loadtime.Agent\n"

DESCRIPTOR_BYTES = b'<aspectj>\n  <aspects>\n    <aspect name="mop.HasNextMonitorAspect"/>\n  </aspects>\n</aspectj>\n'

CLASS_FILES = {
    "mop/HasNextRuntimeMonitor.class": b"\xca\xfe\xba\xbe\x00\x00\x00\x32monitor",
    "mop/HasNextMonitor_Set.class": b"\xca\xfe\xba\xbe\x00\x00\x00\x32set",
    "mop/internal/Event.class": b"\xca\xfe\xba\xbe\x00\x00\x00\x32event",
}


class FakeToolRunner:
    """Stands in for javac, ajc and jar, producing the artifacts each would.

    Each tool step returns its exit status, or None for an interrupted wait.
    """

    def __init__(
        self,
        statuses: dict[str, int] | None = None,
        produce_descriptor: bool = True,
    ) -> None:
        self.statuses = statuses or {}
        self.produce_descriptor = produce_descriptor
        self.invocations: list[ToolInvocation] = []
        self.archived_entries: list[str] = []

    @property
    def tools(self) -> list[str]:
        return [invocation.tool for invocation in self.invocations]

    def execute(self, invocation: ToolInvocation) -> ToolResult:
        self.invocations.append(invocation)
        status = getattr(self, f"_{invocation.tool}")(invocation)
        if status is None:
            return ToolResult.interrupted()
        return ToolResult.exited(status)

    def _javac(self, invocation: ToolInvocation) -> int | None:
        status = self.statuses.get("javac", 0)
        if status == 0:
            for name, data in CLASS_FILES.items():
                target = invocation.working_directory / name
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
        return status

    def _java(self, invocation: ToolInvocation) -> int | None:
        args = invocation.command_line
        out_dir = Path(args[args.index("-d") + 1])
        if self.produce_descriptor:
            meta_inf = out_dir / "META-INF"
            meta_inf.mkdir(parents=True, exist_ok=True)
            (meta_inf / "aop-ajc.xml").write_bytes(DESCRIPTOR_BYTES)
        return self.statuses.get("ajc", 0)

    def _jar(self, invocation: ToolInvocation) -> int | None:
        args = invocation.command_line
        archive = invocation.working_directory / args[3]
        root = Path(args[args.index("-C") + 1])
        self.archived_entries = sorted(
            p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()
        )
        status = self.statuses.get("jar", 0)
        if status == 0:
            with zipfile.ZipFile(archive, "w") as jar:
                for entry in self.archived_entries:
                    jar.write(root / entry, entry)
        return status


@pytest.fixture
def lib_dir(tmp_path: Path) -> Path:
    lib = tmp_path / "lib"
    lib.mkdir()
    for name in ("aspectjtools.jar", "aspectjrt.jar", "aspectjweaver.jar", "rt.jar"):
        (lib / name).write_bytes(b"PK\x03\x04")
    (lib / "BaseAspect.aj").write_text("package mop;\npublic aspect BaseAspect {}\n")
    (lib / "MANIFEST.MF").write_text(MANIFEST_TEXT)
    return lib


@pytest.fixture
def toolchain(lib_dir: Path) -> ToolchainConfig:
    return ToolchainConfig(lib_dir=str(lib_dir))


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    (out / "HasNextRuntimeMonitor.java").write_text("package mop;\npublic class HasNextRuntimeMonitor {}\n")
    (out / "HasNextMonitorAspect.aj").write_text("package mop;\npublic aspect HasNextMonitorAspect {}\n")
    return out


@pytest.fixture
def work_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    return cwd


@pytest.fixture
def fake_runner() -> FakeToolRunner:
    return FakeToolRunner()
