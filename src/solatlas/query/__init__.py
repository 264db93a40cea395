"""Query module - read-only views over the scanned inventory."""

from solatlas.query.matrix import (
    ComparisonMatrix,
    HeaderMismatch,
    LocatedArtifact,
    MatrixCell,
    MatrixColumn,
    MatrixRow,
    build_matrix,
)
from solatlas.query.ops import (
    ClassQueryService,
    ClassSelector,
    ClassVersion,
    DistinctField,
    SelectorMode,
)

__all__ = [
    "ClassQueryService",
    "ClassSelector",
    "ClassVersion",
    "ComparisonMatrix",
    "DistinctField",
    "HeaderMismatch",
    "LocatedArtifact",
    "MatrixCell",
    "MatrixColumn",
    "MatrixRow",
    "SelectorMode",
    "build_matrix",
]
