"""Genealogy enums shared by every layer.

Values are the stable wire strings: they are persisted in the database,
written to audit entries, and returned as error codes by the CommandBus.
"""

from __future__ import annotations

from enum import StrEnum


class Gender(StrEnum):
    """Recorded gender of a person."""

    MALE = "MALE"
    FEMALE = "FEMALE"
    UNKNOWN = "UNKNOWN"


class Relation(StrEnum):
    """Role a newly created person takes relative to an anchor person."""

    PARENT = "PARENT"
    CHILD = "CHILD"
    SPOUSE = "SPOUSE"


class AuditAction(StrEnum):
    """Kinds of accepted mutation recorded in the audit log."""

    CREATE_TREE = "CREATE_TREE"
    ADD_PERSON = "ADD_PERSON"
    ADD_PARENT_CHILD = "ADD_PARENT_CHILD"
    ADD_SPOUSE = "ADD_SPOUSE"
    CREATE_PERSON_AND_LINK = "CREATE_PERSON_AND_LINK"
    REMOVE_RELATIONSHIP = "REMOVE_RELATIONSHIP"


class RejectKind(StrEnum):
    """Named reasons a mutation or query is refused."""

    # validation
    INVALID_FIELD = "InvalidField"
    INVALID_PAGINATION = "InvalidPagination"
    # structural conflict
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    DUPLICATE_EDGE = "DuplicateEdge"
    SELF_REFERENCE = "SelfReference"
    TOO_MANY_PARENTS = "TooManyParents"
    CYCLE_DETECTED = "CycleDetected"
    AGE_INCONSISTENCY = "AgeInconsistency"
    UNKNOWN_PERSON = "UnknownPerson"
    EDGE_NOT_FOUND = "EdgeNotFound"
    TREE_NOT_FOUND = "TreeNotFound"
    # concurrency
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"
    # infrastructure
    STORAGE_ERROR = "StorageError"
