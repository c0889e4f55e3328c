"""
Attribute filtering: clause compiler and SQL backend.
"""

from .compiler import (
    And,
    Equals,
    HasPath,
    NamespaceExists,
    Or,
    Predicate,
    compile_filters,
    group_clauses,
)
from .sql import AttributeSource, SQLPredicateBuilder, apply_predicate

__all__ = [
    "And",
    "Equals",
    "HasPath",
    "NamespaceExists",
    "Or",
    "Predicate",
    "compile_filters",
    "group_clauses",
    "AttributeSource",
    "SQLPredicateBuilder",
    "apply_predicate",
]
