"""Discovery of repositories, solutions, projects and source files on disk."""

from solatlas.scan._internal.discovery.git_info import GitInfo, read_git_info
from solatlas.scan._internal.discovery.projects import (
    ProjectMetadata,
    derive_runtime,
    read_project_metadata,
)
from solatlas.scan._internal.discovery.solutions import (
    find_solutions,
    read_readme_description,
    solution_project_paths,
)
from solatlas.scan._internal.discovery.sources import (
    SourceFile,
    iter_source_files,
    read_source,
    relative_to_root,
)

__all__ = [
    "GitInfo",
    "ProjectMetadata",
    "SourceFile",
    "derive_runtime",
    "find_solutions",
    "iter_source_files",
    "read_git_info",
    "read_project_metadata",
    "read_readme_description",
    "read_source",
    "relative_to_root",
    "solution_project_paths",
]
