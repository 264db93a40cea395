"""Shared fixtures for CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest

CSPROJ = """<Project Sdk="Microsoft.NET.Sdk.Web">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
  </PropertyGroup>
</Project>
"""

SLN = """Microsoft Visual Studio Solution File, Format Version 12.00
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Billing.Api", "src\\Billing.Api\\Billing.Api.csproj", "{00000000-0000-0000-0000-000000000001}"
EndProject
Global
EndGlobal
"""

CUSTOMER = """using System.ComponentModel.DataAnnotations;

namespace Contoso.Billing
{
    public class Customer
    {
        public int Id { get; set; }

        [Required]
        [MaxLength(%d)]
        public string Name { get; set; }
    }
}
"""


def write_repository(git_root: Path, name: str, max_length: int) -> Path:
    repo = git_root / name
    project_dir = repo / "src" / "Billing.Api"
    (project_dir / "Models").mkdir(parents=True)
    (project_dir / "Billing.Api.csproj").write_text(CSPROJ)
    (project_dir / "Models" / "Customer.cs").write_text(CUSTOMER % max_length)
    (repo / f"{name}.sln").write_text(SLN)
    return repo


@pytest.fixture
def git_root(tmp_path: Path) -> Path:
    """Two repositories holding diverging copies of Customer."""
    root = tmp_path / "git"
    root.mkdir()
    write_repository(root, "billing-east", 50)
    write_repository(root, "billing-west", 100)
    return root


@pytest.fixture
def config_file(tmp_path: Path, git_root: Path) -> Path:
    """Config pointing at the temp git root, database and log file."""
    path = tmp_path / "solatlas.yaml"
    path.write_text(
        f"scan:\n  git_root_path: {git_root}\n"
        f"database:\n  path: {tmp_path / 'atlas.db'}\n"
        "logging:\n  outputs:\n"
        f"    - format: json\n      destination: {tmp_path / 'atlas.log'}\n"
    )
    return path
