"""Shared fixtures for scan tests."""

from __future__ import annotations

import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pygit2
import pytest

if TYPE_CHECKING:
    from solatlas.scan._internal.db import Database

SDK_WEB_CSPROJ = """<Project Sdk="Microsoft.NET.Sdk.Web">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="Microsoft.EntityFrameworkCore" Version="8.0.0" />
  </ItemGroup>
</Project>
"""

SDK_LIBRARY_CSPROJ = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net6.0</TargetFramework>
  </PropertyGroup>
</Project>
"""

CUSTOMER_V1 = """using System.ComponentModel.DataAnnotations;

namespace Contoso.Billing
{
    public class Customer
    {
        [Key]
        public int Id { get; set; }

        [Required]
        [MaxLength(50)]
        public string Name { get; set; }
    }
}
"""

CUSTOMER_V2 = """using System.ComponentModel.DataAnnotations;

namespace Contoso.Billing
{
    public class Customer
    {
        [Key]
        public int Id { get; set; }

        [Required]
        [MaxLength(100)]
        public string Name { get; set; }

        public string? Email { get; set; }
    }
}
"""

BILLING_CONTEXT = """using Microsoft.EntityFrameworkCore;

namespace Contoso.Billing.Data;

public class BillingContext : DbContext
{
    public DbSet<Customer> Customers { get; set; }
    public DbSet<Invoice> Invoices { get; set; }
}
"""

CUSTOMERS_CONTROLLER = """using Microsoft.AspNetCore.Mvc;

namespace Contoso.Billing.Controllers;

[ApiController]
[Route("api/customers")]
public class CustomersController : ControllerBase
{
    [HttpGet("{id}")]
    public async Task<IActionResult> Get(int id) => Ok();

    [HttpPost]
    public IActionResult Create(Customer customer) => Ok();

    [NonAction]
    public void Helper() { }
}
"""


def sln_text(*project_paths: str) -> str:
    """Minimal classic solution file referencing the given projects."""
    lines = [
        "Microsoft Visual Studio Solution File, Format Version 12.00",
        "# Visual Studio Version 17",
    ]
    for i, path in enumerate(project_paths):
        name = Path(path.replace("\\", "/")).stem
        lines.append(
            'Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = '
            f'"{name}", "{path}", "{{00000000-0000-0000-0000-00000000000{i}}}"'
        )
        lines.append("EndProject")
    lines.append("Global")
    lines.append("EndGlobal")
    return "\n".join(lines) + "\n"


def commit_all(repo_path: Path, message: str = "Initial commit") -> None:
    """Stage every file and commit on HEAD."""
    repo = pygit2.Repository(str(repo_path))
    repo.index.add_all()
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    parents = [] if repo.head_is_unborn else [repo.head.target]
    repo.create_commit("HEAD", sig, sig, message, tree, parents)


class GitRootBuilder:
    """Lays out repositories with solutions, projects and sources under one root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def repository(self, name: str, *, git: bool = True) -> Path:
        repo_path = self.root / name
        repo_path.mkdir(parents=True, exist_ok=True)
        if git:
            pygit2.init_repository(str(repo_path))
        return repo_path

    def project(
        self,
        repo_path: Path,
        project_rel: str,
        sources: dict[str, str],
        *,
        csproj: str = SDK_WEB_CSPROJ,
    ) -> Path:
        csproj_path = repo_path / project_rel
        csproj_path.parent.mkdir(parents=True, exist_ok=True)
        csproj_path.write_text(csproj)
        for rel, content in sources.items():
            source = csproj_path.parent / rel
            source.parent.mkdir(parents=True, exist_ok=True)
            source.write_text(content)
        return csproj_path

    def solution(self, repo_path: Path, name: str, *project_rels: str) -> Path:
        sln = repo_path / f"{name}.sln"
        sln.write_text(sln_text(*(p.replace("/", "\\") for p in project_rels)))
        return sln

    def simple_repository(
        self,
        name: str,
        sources: dict[str, str],
        *,
        project: str = "Billing.Api",
        commit: bool = True,
    ) -> Path:
        """One solution with one web project holding ``sources``."""
        repo_path = self.repository(name)
        project_rel = f"src/{project}/{project}.csproj"
        self.project(repo_path, project_rel, sources)
        self.solution(repo_path, name, project_rel)
        (repo_path / "README.md").write_text(f"# {name}\n\nBilling service for {name}.\n")
        if commit:
            commit_all(repo_path)
        return repo_path

    def commit(self, repo_path: Path, message: str = "Update") -> None:
        commit_all(repo_path, message)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db(temp_dir: Path) -> Generator[Database, None, None]:
    """Create a temporary database with schema."""
    from solatlas.scan._internal.db import Database

    db = Database(temp_dir / "test.db")
    db.create_all()
    yield db
    db.engine.dispose()


@pytest.fixture
def git_root(temp_dir: Path) -> Path:
    root = temp_dir / "git"
    root.mkdir()
    return root


@pytest.fixture
def builder(git_root: Path) -> GitRootBuilder:
    return GitRootBuilder(git_root)


@pytest.fixture
def sources() -> dict[str, str]:
    """Sample C# files keyed by short name."""
    return {
        "customer_v1": CUSTOMER_V1,
        "customer_v2": CUSTOMER_V2,
        "billing_context": BILLING_CONTEXT,
        "customers_controller": CUSTOMERS_CONTROLLER,
        "web_csproj": SDK_WEB_CSPROJ,
        "library_csproj": SDK_LIBRARY_CSPROJ,
    }


@pytest.fixture
def temp_repo(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository with one commit."""
    repo_path = temp_dir / "repo"
    repo_path.mkdir()
    pygit2.init_repository(str(repo_path))

    repo = pygit2.Repository(str(repo_path))
    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"

    (repo_path / "README.md").write_text("# Test Repo\n")
    commit_all(repo_path)

    yield repo_path
