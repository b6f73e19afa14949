#!/usr/bin/env python3
# CUI // SP-CTI
"""Shared pytest fixtures for the fnmigrate test suite.

Provides a small C# Azure Functions project on disk and a scripted stand-in
for the `func` / `mvn` invoker, so pipeline tests never spawn processes.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from fnmigrate.migration.config import DEFAULT_SETTINGS, build_run_config  # noqa: E402
from fnmigrate.migration.models import InvocationPolicy  # noqa: E402
from fnmigrate.resilience.errors import ToolNotFoundError  # noqa: E402
from fnmigrate.migration.tool_invoker import (  # noqa: E402
    InvocationResult,
    ToolInvoker,
    classify,
)


# ---------------------------------------------------------------------------
# C# source fixtures
# ---------------------------------------------------------------------------
CSPROJ = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net6.0</TargetFramework>
    <AzureFunctionsVersion>v4</AzureFunctionsVersion>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="Microsoft.NET.Sdk.Functions" Version="4.1.1" />
    <PackageReference Include="Newtonsoft.Json" Version="13.0.1" />
    <PackageReference Include="Contoso.Internal.Billing">
      <Version>2.3.0</Version>
    </PackageReference>
  </ItemGroup>
</Project>
"""

HTTP_FUNCTION = """using Microsoft.Azure.WebJobs;
using Microsoft.Azure.WebJobs.Extensions.Http;

namespace Contoso.Orders
{
    public static class GetOrder
    {
        [FunctionName("GetOrder")]
        public static IActionResult Run(
            [HttpTrigger(AuthorizationLevel.Function, "get", Route = "orders/{id}")] HttpRequest req,
            ILogger log)
        {
            return new OkResult();
        }
    }
}
"""

TIMER_FUNCTION = """using Microsoft.Azure.WebJobs;

namespace Contoso.Orders
{
    public static class NightlyCleanup
    {
        [FunctionName("NightlyCleanup")]
        public static void Run([TimerTrigger("0 0 2 * * *")] TimerInfo timer, ILogger log)
        {
        }
    }
}
"""

HELPER_CLASS = """namespace Contoso.Orders
{
    public static class OrderMapper
    {
        public static string Map(string id) => id;
    }
}
"""

TEST_CLASS = """using Xunit;

public class GetOrderTests
{
    [Fact]
    public void ReturnsOk() { }
}
"""


@pytest.fixture
def csharp_project(tmp_path):
    """C# Functions project with one HTTP and one timer function."""
    root = tmp_path / "OrdersApp"
    root.mkdir()
    (root / "OrdersApp.csproj").write_text(CSPROJ, encoding="utf-8")
    (root / "host.json").write_text('{"version": "2.0"}', encoding="utf-8")
    (root / "GetOrder.cs").write_text(HTTP_FUNCTION, encoding="utf-8")
    (root / "NightlyCleanup.cs").write_text(TIMER_FUNCTION, encoding="utf-8")
    (root / "OrderMapper.cs").write_text(HELPER_CLASS, encoding="utf-8")
    tests_dir = root / "Tests"
    tests_dir.mkdir()
    (tests_dir / "GetOrderTests.cs").write_text(TEST_CLASS, encoding="utf-8")
    return root


@pytest.fixture
def run_config(csharp_project):
    """RunConfig for csharp_project with a fixed timestamp and no timeout."""
    return build_run_config(
        csharp_project,
        settings=DEFAULT_SETTINGS,
        timestamp="20260101_120000",
        timeout_seconds=0,
    )


# ---------------------------------------------------------------------------
# Scripted tool invoker
# ---------------------------------------------------------------------------
class FakeInvoker(ToolInvoker):
    """ToolInvoker that answers from a script instead of running processes.

    script maps a key to (exit_code, stdout). Keys are tried most specific
    first: "func new <Name>", "<tool> <first-arg>", "<tool>". Unscripted
    calls succeed. `func init` and `func new` create the files the real CLI
    would, so later phases find a project directory.
    """

    def __init__(self, script=None, missing=()):
        super().__init__(timeout_seconds=None)
        self.script = dict(script or {})
        self.missing = set(missing)
        self.calls = []

    def _lookup(self, tool, args):
        keys = []
        if tool == "func" and args[:1] == ["new"] and "--name" in args:
            keys.append(f"func new {args[args.index('--name') + 1]}")
        if args:
            keys.append(f"{tool} {args[0]}")
        keys.append(tool)
        for key in keys:
            if key in self.script:
                return self.script[key]
        return 0, ""

    def _side_effects(self, tool, args, working_dir, exit_code):
        if exit_code != 0 or tool != "func":
            return
        if args[:1] == ["init"]:
            project = Path(working_dir) / args[1]
            project.mkdir(parents=True, exist_ok=True)
            (project / "host.json").write_text("{}", encoding="utf-8")
            (project / "pom.xml").write_text(
                "<project>\n    <dependencies>\n    </dependencies>\n</project>\n",
                encoding="utf-8",
            )
        elif args[:1] == ["new"]:
            name = args[args.index("--name") + 1]
            java_dir = Path(working_dir) / "src" / "main" / "java" / "com" / "function"
            java_dir.mkdir(parents=True, exist_ok=True)
            (java_dir / f"{name}.java").write_text("class X {}", encoding="utf-8")

    def invoke(self, tool, args, working_dir, policy=InvocationPolicy.STRICT, timeout=None):
        args = [str(a) for a in args]
        self.calls.append((tool, args, str(working_dir), InvocationPolicy(policy)))
        if tool in self.missing:
            raise ToolNotFoundError(tool)
        exit_code, stdout = self._lookup(tool, args)
        self._side_effects(tool, args, working_dir, exit_code)
        result = InvocationResult(
            tool=tool,
            args=args,
            exit_code=exit_code,
            stdout=stdout,
            stderr="",
            outcome=classify(exit_code, policy, timed_out=exit_code is None),
            duration_ms=1,
            timed_out=exit_code is None,
        )
        if self.on_invoke:
            self.on_invoke(result)
        return result

    def commands(self):
        """Calls as "tool arg0 arg1..." strings, in order."""
        return [" ".join([tool] + args) for tool, args, _, _ in self.calls]


@pytest.fixture
def fake_invoker():
    return FakeInvoker()


@pytest.fixture
def tools_on_path(monkeypatch):
    """Make preflight see every required tool on PATH."""
    monkeypatch.setattr("fnmigrate.migration.pipeline.check_tools", lambda tools: [])


@pytest.fixture
def make_invoker():
    """The FakeInvoker class, for tests that script tool results."""
    return FakeInvoker
