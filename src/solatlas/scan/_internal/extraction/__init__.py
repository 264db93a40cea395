"""Turning declaration nodes into artifact, member, data set and action records."""

from solatlas.scan._internal.extraction.actions import ACTION_FIELDS, action_key, extract_actions
from solatlas.scan._internal.extraction.annotations import (
    AnnotationBag,
    detect_collection,
    extract_annotations,
    logical_class_key,
    type_display,
)
from solatlas.scan._internal.extraction.classify import (
    Classification,
    classify,
    simple_type_name,
    split_base_list,
)
from solatlas.scan._internal.extraction.datasets import DATASET_FIELDS, dataset_key, extract_datasets
from solatlas.scan._internal.extraction.members import MEMBER_FIELDS, extract_members, member_key

__all__ = [
    "ACTION_FIELDS",
    "AnnotationBag",
    "Classification",
    "DATASET_FIELDS",
    "MEMBER_FIELDS",
    "action_key",
    "classify",
    "dataset_key",
    "detect_collection",
    "extract_actions",
    "extract_annotations",
    "extract_datasets",
    "extract_members",
    "logical_class_key",
    "member_key",
    "simple_type_name",
    "split_base_list",
    "type_display",
]
