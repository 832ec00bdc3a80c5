from dataclasses import dataclass
from pathlib import Path

__all__ = ["ParserConfig"]


@dataclass(frozen=True)
class ParserConfig:
    """Options controlling how documents are loaded and frames are resolved

    Attributes:
        allow_ancestor_frames: Let relative_to names and pose queries resolve frames
            declared in enclosing model or world scopes, defaults to False (sibling scope only)
        eager_frame_graphs: Build every frame graph during load and report its errors
            with the load errors, defaults to False (graphs are built on first query)
        xsd_path: XSD schema to validate documents against before loading, defaults to None
    """

    allow_ancestor_frames: bool = False
    eager_frame_graphs: bool = False
    xsd_path: Path | None = None
