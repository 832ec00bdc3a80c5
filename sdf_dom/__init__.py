from .config import ParserConfig
from .errors import Error, ErrorCode
from .frames import FrameGraph, GraphState
from .loader import DOMLoader
from .model import FrameSpec, Joint, Limit, Link, Model, World
from .pose import Pose
from .registry import NameRegistry
from .root import Root

__all__ = [
    "Root",
    "World",
    "Model",
    "Link",
    "Joint",
    "Limit",
    "FrameSpec",
    "Pose",
    "Error",
    "ErrorCode",
    "NameRegistry",
    "FrameGraph",
    "GraphState",
    "DOMLoader",
    "ParserConfig",
]
