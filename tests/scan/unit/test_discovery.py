"""Tests for solution, project, source and git discovery."""

from __future__ import annotations

import shutil
from pathlib import Path

import pygit2
import pytest

from solatlas.core.errors import ErrorCode, ScanError
from solatlas.scan._internal.discovery import (
    derive_runtime,
    find_solutions,
    iter_source_files,
    read_git_info,
    read_project_metadata,
    read_readme_description,
    read_source,
    relative_to_root,
    solution_project_paths,
)
from solatlas.scan._internal.discovery.git_info import combine_url, infer_provider
from solatlas.scan._internal.discovery.projects import net_framework_tfm, parse_project_xml

SLN = """
Microsoft Visual Studio Solution File, Format Version 12.00
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Billing.Api", "src\\Billing.Api\\Billing.Api.csproj", "{11111111-1111-1111-1111-111111111111}"
EndProject
Project("{2150E333-8FDC-42A3-9474-1A3956D46DE8}") = "Solution Items", "Solution Items", "{22222222-2222-2222-2222-222222222222}"
EndProject
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Billing.Core", "src\\Billing.Core\\Billing.Core.csproj", "{33333333-3333-3333-3333-333333333333}"
EndProject
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Billing.Api", "SRC\\Billing.Api\\Billing.Api.csproj", "{44444444-4444-4444-4444-444444444444}"
EndProject
"""

SLNX = """<Solution>
  <Folder Name="/src/">
    <Project Path="src/Billing.Api/Billing.Api.csproj" />
    <Project Path="src/Billing.Web/Billing.Web.esproj" />
  </Folder>
  <Project Path="tests/Billing.Tests/Billing.Tests.csproj" />
</Solution>
"""


class TestSolutions:
    def test_sln_project_paths(self, temp_dir: Path) -> None:
        sln = temp_dir / "Billing.sln"
        sln.write_text(SLN)

        paths = solution_project_paths(sln)

        assert paths == [
            "src/Billing.Api/Billing.Api.csproj",
            "src/Billing.Core/Billing.Core.csproj",
        ]

    def test_slnx_project_paths(self, temp_dir: Path) -> None:
        slnx = temp_dir / "Billing.slnx"
        slnx.write_text(SLNX)

        assert solution_project_paths(slnx) == [
            "src/Billing.Api/Billing.Api.csproj",
            "tests/Billing.Tests/Billing.Tests.csproj",
        ]

    def test_malformed_slnx(self, temp_dir: Path) -> None:
        slnx = temp_dir / "Broken.slnx"
        slnx.write_text("<Solution><Project")

        with pytest.raises(ScanError) as exc_info:
            solution_project_paths(slnx)

        assert exc_info.value.code == ErrorCode.SCAN_PROJECT_FILE_INVALID

    def test_missing_solution(self, temp_dir: Path) -> None:
        with pytest.raises(ScanError):
            solution_project_paths(temp_dir / "Missing.sln")

    def test_root_solutions_win(self, temp_dir: Path) -> None:
        (temp_dir / "B.sln").write_text("")
        (temp_dir / "A.slnx").write_text("<Solution />")
        (temp_dir / "nested").mkdir()
        (temp_dir / "nested" / "C.sln").write_text("")

        assert [p.name for p in find_solutions(temp_dir)] == ["A.slnx", "B.sln"]

    def test_nested_solutions_when_root_has_none(self, temp_dir: Path) -> None:
        (temp_dir / "src").mkdir()
        (temp_dir / "src" / "App.sln").write_text("")
        (temp_dir / "node_modules" / "pkg").mkdir(parents=True)
        (temp_dir / "node_modules" / "pkg" / "Vendor.sln").write_text("")

        found = find_solutions(temp_dir, excluded_dirs=["node_modules"])

        assert [p.name for p in found] == ["App.sln"]


class TestReadme:
    def test_first_text_line(self, temp_dir: Path) -> None:
        (temp_dir / "README.md").write_text("# Billing\n\n## Intro\n\nHandles invoices.\nMore.\n")

        assert read_readme_description(temp_dir) == "Handles invoices."

    def test_no_readme(self, temp_dir: Path) -> None:
        assert read_readme_description(temp_dir) is None

    def test_headings_only(self, temp_dir: Path) -> None:
        (temp_dir / "README.md").write_text("# Title\n\n## Section\n")

        assert read_readme_description(temp_dir) is None


class TestProjectMetadata:
    def test_sdk_web(self) -> None:
        meta = parse_project_xml(
            '<Project Sdk="Microsoft.NET.Sdk.Web"><PropertyGroup>'
            "<TargetFramework>net8.0</TargetFramework></PropertyGroup></Project>"
        )

        assert meta.target_frameworks == "net8.0"
        assert meta.project_type == "Web"
        assert meta.platform == "Web"
        assert meta.ui_stack == "Web"
        assert meta.is_web_app
        assert not meta.is_class_library

    def test_sdk_library(self) -> None:
        meta = parse_project_xml(
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup>'
            "<TargetFrameworks>net6.0;net8.0</TargetFrameworks></PropertyGroup></Project>"
        )

        assert meta.target_frameworks == "net6.0;net8.0"
        assert meta.project_type == "Library"
        assert meta.is_class_library

    def test_test_project(self) -> None:
        meta = parse_project_xml(
            '<Project Sdk="Microsoft.NET.Sdk"><ItemGroup>'
            '<PackageReference Include="xunit" Version="2.6.0" />'
            "</ItemGroup></Project>"
        )

        assert meta.project_type == "Test"
        assert meta.is_test_project

    def test_console_app(self) -> None:
        meta = parse_project_xml(
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup><OutputType>Exe</OutputType>'
            "<TargetFramework>net8.0</TargetFramework></PropertyGroup></Project>"
        )

        assert meta.project_type == "App"

    def test_wpf(self) -> None:
        meta = parse_project_xml(
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup><OutputType>WinExe</OutputType>'
            "<UseWPF>true</UseWPF><TargetFramework>net8.0-windows</TargetFramework>"
            "</PropertyGroup></Project>"
        )

        assert meta.platform == "Windows"
        assert meta.ui_stack == "WPF"

    def test_legacy_framework_project(self) -> None:
        meta = parse_project_xml(
            '<Project ToolsVersion="15.0" '
            'xmlns="http://schemas.microsoft.com/developer/msbuild/2003">'
            "<PropertyGroup><TargetFrameworkVersion>v4.7.2</TargetFrameworkVersion>"
            "<OutputType>Library</OutputType></PropertyGroup></Project>"
        )

        assert meta.target_frameworks == "net472"
        assert meta.project_type == "Library"

    def test_read_invalid_xml(self, temp_dir: Path) -> None:
        csproj = temp_dir / "Broken.csproj"
        csproj.write_text("<Project><PropertyGroup>")

        with pytest.raises(ScanError) as exc_info:
            read_project_metadata(csproj)

        assert exc_info.value.code == ErrorCode.SCAN_PROJECT_FILE_INVALID

    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            ("v4.7.2", "net472"),
            ("v4.8", "net48"),
            ("4.6.1", "net461"),
            ("v4", "net40"),
            ("v3.5", None),
            ("", None),
            (None, None),
        ],
    )
    def test_net_framework_tfm(self, version: str | None, expected: str | None) -> None:
        assert net_framework_tfm(version) == expected


class TestDeriveRuntime:
    def test_modern_highest_version(self) -> None:
        assert derive_runtime(["net6.0", "net8.0;netstandard2.0", None]) == (".NET", "8.0")

    def test_modern_beats_framework(self) -> None:
        assert derive_runtime(["net48", "net6.0"]) == (".NET", "6.0")

    def test_framework_only(self) -> None:
        assert derive_runtime(["net472", "net48"]) == (".NET Framework", "4.8")

    def test_platform_suffix(self) -> None:
        assert derive_runtime(["net10.0-windows"]) == (".NET", "10.0")

    def test_nothing_known(self) -> None:
        assert derive_runtime([None, "netstandard2.0"]) == (".NET", None)


class TestSources:
    def test_iter_skips_excluded_dirs(self, temp_dir: Path) -> None:
        (temp_dir / "Models").mkdir()
        (temp_dir / "Models" / "Customer.cs").write_text("")
        (temp_dir / "Program.CS").write_text("")
        (temp_dir / "notes.txt").write_text("")
        (temp_dir / "obj" / "Debug").mkdir(parents=True)
        (temp_dir / "obj" / "Debug" / "Generated.cs").write_text("")
        (temp_dir / "Bin").mkdir()
        (temp_dir / "Bin" / "Other.cs").write_text("")

        found = iter_source_files(temp_dir, ["bin", "obj"])

        assert [p.relative_to(temp_dir).as_posix() for p in found] == [
            "Program.CS",
            "Models/Customer.cs",
        ]

    def test_read_source_fingerprint(self, temp_dir: Path) -> None:
        path = temp_dir / "repo" / "Customer.cs"
        path.parent.mkdir()
        path.write_bytes(b"public class Customer { }")

        source = read_source(path, temp_dir)

        assert source.relative_path == "repo/Customer.cs"
        assert source.size_bytes == 25
        assert len(source.sha256) == 64
        assert source.content == b"public class Customer { }"

    def test_read_source_over_limit(self, temp_dir: Path) -> None:
        path = temp_dir / "Big.cs"
        path.write_bytes(b"x" * 100)

        with pytest.raises(ScanError) as exc_info:
            read_source(path, temp_dir, max_bytes=10)

        assert exc_info.value.code == ErrorCode.SCAN_SOURCE_UNREADABLE

    def test_read_source_missing(self, temp_dir: Path) -> None:
        with pytest.raises(ScanError):
            read_source(temp_dir / "Gone.cs", temp_dir)

    def test_relative_to_root(self, temp_dir: Path) -> None:
        assert relative_to_root(temp_dir / "a" / "b.cs", temp_dir) == "a/b.cs"


class TestGitInfo:
    @pytest.mark.parametrize(
        ("root", "expected"),
        [
            ("https://github.com/contoso", "https://github.com/contoso/billing"),
            ("https://github.com/contoso/", "https://github.com/contoso/billing"),
            (None, "billing"),
            ("  ", "billing"),
        ],
    )
    def test_combine_url(self, root: str | None, expected: str) -> None:
        assert combine_url(root, "billing") == expected

    def test_infer_provider(self) -> None:
        assert infer_provider("https://GitHub.com/contoso/billing") == "GitHub"
        assert infer_provider("https://dev.azure.com/contoso/_git/billing") == "Unknown"
        assert infer_provider(None) is None

    def test_non_git_folder(self, temp_dir: Path) -> None:
        info = read_git_info(temp_dir, "billing", "https://github.com/contoso")

        assert info.url == "https://github.com/contoso/billing"
        assert info.provider == "GitHub"
        assert info.head_sha is None
        assert info.current_branch is None

    def test_committed_repository(self, temp_repo: Path) -> None:
        repo = pygit2.Repository(str(temp_repo))
        head = repo.head.peel(pygit2.Commit)

        info = read_git_info(temp_repo, "repo")

        assert info.head_sha == str(head.id)
        assert info.current_branch == repo.head.shorthand
        assert info.default_branch == info.current_branch
        assert info.first_commit_at == float(head.author.time)
        assert info.last_commit_at == float(head.author.time)
        assert info.url == "repo"
        assert info.provider == "Unknown"

    def test_origin_remote(self, temp_repo: Path) -> None:
        repo = pygit2.Repository(str(temp_repo))
        repo.remotes.create("origin", "https://github.com/contoso/billing.git")

        info = read_git_info(temp_repo, "repo", "https://example.com/other")

        assert info.url == "https://github.com/contoso/billing.git"
        assert info.provider == "GitHub"

    def test_unborn_head(self, temp_dir: Path) -> None:
        pygit2.init_repository(str(temp_dir / "empty"))

        info = read_git_info(temp_dir / "empty", "empty")

        assert info.head_sha is None
        assert info.first_commit_at is None

    def test_missing_objects_keep_url(self, temp_repo: Path) -> None:
        """A head that cannot be peeled leaves only the URL facts."""
        objects = temp_repo / ".git" / "objects"
        shutil.rmtree(objects)
        objects.mkdir()

        info = read_git_info(temp_repo, "repo", "https://github.com/contoso")

        assert info.url == "https://github.com/contoso/repo"
        assert info.provider == "GitHub"
        assert info.head_sha is None
        assert info.current_branch is None
        assert info.first_commit_at is None
