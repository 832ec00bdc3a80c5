from dataclasses import dataclass, field
from enum import Enum

from lxml import etree

__all__ = ["ErrorCode", "Error", "element_error"]


class ErrorCode(Enum):
    """Kinds of problems reported while loading or querying a document"""

    FILE_READ = "file_read"
    STRING_READ = "string_read"
    SCHEMA_INVALID = "schema_invalid"
    ELEMENT_MISSING = "element_missing"
    ELEMENT_INVALID = "element_invalid"
    ELEMENT_INCORRECT_TYPE = "element_incorrect_type"
    ATTRIBUTE_MISSING = "attribute_missing"
    ATTRIBUTE_INVALID = "attribute_invalid"
    DUPLICATE_NAME = "duplicate_name"
    FRAME_UNRESOLVED = "frame_unresolved"
    FRAME_CYCLE = "frame_cycle"
    JOINT_PARENT_LINK_INVALID = "joint_parent_link_invalid"
    JOINT_CHILD_LINK_INVALID = "joint_child_link_invalid"
    JOINT_PARENT_SAME_AS_CHILD = "joint_parent_same_as_child"


@dataclass(frozen=True)
class Error:
    """A single problem found in a document

    Attributes:
        code: Kind of the problem
        message: Human-readable description
        line_number: Line of the offending element in the source, if known
        source_path: Hierarchical path of the offending element, if known
    """

    code: ErrorCode
    message: str
    line_number: int | None = field(default=None, compare=False)
    source_path: str | None = field(default=None, compare=False)

    def __str__(self) -> str:
        location = f" (line {self.line_number})" if self.line_number is not None else ""
        return f"[{self.code.name}] {self.message}{location}"


def element_error(code: ErrorCode, message: str, elem: etree._Element | None) -> Error:
    """Create an error tagged with the source location of an element

    Args:
        code: Kind of the problem
        message: Human-readable description
        elem: Offending element, or None if there is no element to point at

    Returns:
        Error with line number and element path filled in when available
    """
    if elem is None:
        return Error(code, message)

    tree = elem.getroottree()
    return Error(code, message, line_number=elem.sourceline, source_path=tree.getpath(elem))
