import logging
import weakref
from dataclasses import InitVar, dataclass, field

from .config import ParserConfig
from .errors import Error, ErrorCode
from .frames import MODEL_FRAME, SCOPE_DELIMITER, WORLD_FRAME, FrameGraph, GraphState
from .pose import Pose
from .registry import NameRegistry

logger = logging.getLogger(__name__)

__all__ = [
    "Base",
    "FrameSpec",
    "FrameEntity",
    "Limit",
    "Link",
    "Joint",
    "Model",
    "World",
]


@dataclass
class Base:
    """Base class for objects with source tracking metadata

    Attributes:
        line_number: Line number of element in source file
        source_path: Hierarchical path to element in source format
        source_file: Path to source file
    """

    _line_number: int | None = field(default=None, repr=False, compare=False, kw_only=True)
    _source_path: str | None = field(default=None, repr=False, compare=False, kw_only=True)
    _source_file: str | None = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass
class FrameSpec(Base):
    """Authored pose of an entity

    Attributes:
        pose: Pose of the entity in the relative_to frame, defaults to the identity
        relative_to: Name of the frame the pose is expressed in, empty for the enclosing model or world frame
    """

    pose: Pose = field(default_factory=Pose)
    relative_to: str = ""


def _detached_error(kind: str, name: str) -> Error:
    return Error(ErrorCode.FRAME_UNRESOLVED, f"{kind} '{name}' is not attached to a model.")


@dataclass
class FrameEntity(Base):
    """Link or joint: a named frame owned by a model

    Attributes:
        name: Name of the entity, unique among the frames of its model
        frame_spec: Authored pose and the frame it is relative to
    """

    name: str
    frame_spec: FrameSpec = field(default_factory=FrameSpec)
    _model: weakref.ref | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def raw_pose(self) -> Pose:
        return self.frame_spec.pose

    @property
    def pose_relative_to(self) -> str:
        return self.frame_spec.relative_to

    def model(self) -> "Model | None":
        """Model owning this entity, or None if it is detached"""
        return self._model() if self._model is not None else None

    def resolve_pose(self, frame: str = "") -> tuple[Pose | None, list[Error]]:
        """Pose of this entity relative to another frame

        Args:
            frame: Name of the frame to express the pose in, defaults to the enclosing model frame

        Returns:
            Tuple of (pose, errors); pose is None when errors is non-empty
        """
        model = self.model()
        if model is None:
            return None, [_detached_error(type(self).__name__, self.name)]

        return model.frame_graph.relative_pose(self.name, frame)

    def pose(self, frame: str = "") -> Pose | None:
        """Pose of this entity relative to another frame, or None if it can't be resolved"""
        pose, errors = self.resolve_pose(frame)
        if errors:
            logger.debug("Unable to resolve pose of '%s' relative to '%s': %s", self.name, frame, errors[0])
        return pose


@dataclass
class Link(FrameEntity):
    """Robot link

    Physical payloads (inertial, collision, visual, sensors) are not loaded.
    """


@dataclass
class Limit(Base):
    """Joint limits

    Attributes:
        lower: Lower joint limit (radians for revolute, meters for prismatic)
        upper: Upper joint limit (radians for revolute, meters for prismatic)
        effort: Maximum joint effort (torque for revolute, force for prismatic)
        velocity: Maximum joint velocity (rad/s for revolute, m/s for prismatic)
    """

    lower: float = float("-inf")
    upper: float = float("inf")
    effort: float = -1.0
    velocity: float = -1.0


@dataclass
class Joint(FrameEntity):
    """Joint connecting two links

    Attributes:
        type: Type of joint (revolute, prismatic, fixed, continuous, ball, screw, universal)
        parent: Name of the parent link, or "world"
        child: Name of the child link
        axis: (x, y, z) axis of actuation, defaults to (0.0, 0.0, 1.0)
        limit: Limits of the first axis, defaults to None if not specified
    """

    type: str = ""
    parent: str = ""
    child: str = ""
    axis: tuple[float, float, float] = (0.0, 0.0, 1.0)
    limit: Limit | None = None


@dataclass
class Model(Base):
    """Model containing links, joints and nested models

    Attributes:
        name: Name of the model, unique within its world or parent model
        frame_spec: Authored pose of the model and the frame it is relative to
        static: Whether the model is immovable
        links: Links of the model in document order
        joints: Joints of the model in document order
        models: Nested models in document order
        frame_graph: Frame graph of the model scope
    """

    name: str
    frame_spec: FrameSpec = field(default_factory=FrameSpec)
    static: bool = False
    links: NameRegistry[Link] = field(default_factory=lambda: NameRegistry("link"), repr=False, compare=False)
    joints: NameRegistry[Joint] = field(default_factory=lambda: NameRegistry("joint"), repr=False, compare=False)
    models: NameRegistry["Model"] = field(default_factory=lambda: NameRegistry("model"), repr=False, compare=False)
    frame_graph: FrameGraph = field(init=False, repr=False, compare=False)
    config: InitVar[ParserConfig | None] = None
    _scope: weakref.ref | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self, config: ParserConfig | None):
        self.frame_graph = FrameGraph(self.name, MODEL_FRAME, config)

    @property
    def raw_pose(self) -> Pose:
        return self.frame_spec.pose

    @property
    def pose_relative_to(self) -> str:
        return self.frame_spec.relative_to

    def add_link(self, link: Link) -> Error | None:
        """Add a link while loading; returns DUPLICATE_NAME if the frame name is taken"""
        return self._add_frame(self.links, link)

    def add_joint(self, joint: Joint) -> Error | None:
        """Add a joint while loading; returns DUPLICATE_NAME if the frame name is taken"""
        return self._add_frame(self.joints, joint)

    def add_model(self, model: "Model") -> Error | None:
        """Add a nested model while loading; returns DUPLICATE_NAME if the frame name is taken"""
        return self._add_frame(self.models, model, nested=model.frame_graph)

    def _add_frame(self, registry: NameRegistry, entity, nested: FrameGraph | None = None) -> Error | None:
        if self.frame_graph.state is not GraphState.UNBUILT:
            raise RuntimeError(f"Model '{self.name}' is frozen once its frame graph is built")

        # links, joints and nested models share one frame namespace
        for other in (self.links, self.joints, self.models):
            if other is not registry and other.name_exists(entity.name):
                return Error(
                    ErrorCode.DUPLICATE_NAME,
                    f"{registry.kind.capitalize()} name '{entity.name}' is already used by a {other.kind} "
                    f"in model '{self.name}'.",
                    line_number=entity._line_number,
                    source_path=entity._source_path,
                )

        if error := registry.add(entity):
            return error

        if nested is not None:
            entity._scope = weakref.ref(self)
        else:
            entity._model = weakref.ref(self)
        self.frame_graph.add_frame(entity.name, entity.frame_spec, nested=nested)
        return None

    def link_count(self) -> int:
        return self.links.count()

    def link_by_index(self, index: int) -> Link | None:
        return self.links.by_index(index)

    def link_by_name(self, name: str) -> Link | None:
        return self.links.by_name(name)

    def link_name_exists(self, name: str) -> bool:
        return self.links.name_exists(name)

    def joint_count(self) -> int:
        return self.joints.count()

    def joint_by_index(self, index: int) -> Joint | None:
        return self.joints.by_index(index)

    def joint_by_name(self, name: str) -> Joint | None:
        return self.joints.by_name(name)

    def joint_name_exists(self, name: str) -> bool:
        return self.joints.name_exists(name)

    def model_count(self) -> int:
        return self.models.count()

    def model_by_index(self, index: int) -> "Model | None":
        return self.models.by_index(index)

    def model_by_name(self, name: str) -> "Model | None":
        return self.models.by_name(name)

    def model_name_exists(self, name: str) -> bool:
        return self.models.name_exists(name)

    def scope(self) -> "Model | World | None":
        """World or parent model owning this model, or None for a top-level model"""
        return self._scope() if self._scope is not None else None

    def frame_errors(self) -> list[Error]:
        """Errors found while building the model's frame graph, empty if it is valid"""
        return self.frame_graph.build()

    def resolve_pose(self, frame: str = "") -> tuple[Pose | None, list[Error]]:
        """Pose of this model relative to another frame

        Frames visible from the enclosing scope take precedence; frames inside
        this model (e.g. one of its links) are used otherwise.

        Args:
            frame: Name of the frame to express the pose in, defaults to the enclosing world or model frame

        Returns:
            Tuple of (pose, errors); pose is None when errors is non-empty
        """
        scope = self.scope()
        if scope is None:
            if self._scope is not None:
                return None, [_detached_error("Model", self.name)]
            return self._resolve_top_level_pose(frame)

        graph = scope.frame_graph
        if frame and not graph.has_frame(frame) and self.frame_graph.has_frame(frame):
            frame = f"{self.name}{SCOPE_DELIMITER}{frame}"

        return graph.relative_pose(self.name, frame)

    def _resolve_top_level_pose(self, frame: str) -> tuple[Pose | None, list[Error]]:
        if frame == self.name:
            return Pose(), []

        if frame in ("", WORLD_FRAME):
            if self.frame_spec.relative_to in ("", WORLD_FRAME):
                return self.frame_spec.pose, []
            return None, [
                Error(
                    ErrorCode.FRAME_UNRESOLVED,
                    f"relative_to name '{self.frame_spec.relative_to}' of top-level model '{self.name}' "
                    "does not match a frame.",
                    line_number=self.frame_spec._line_number,
                    source_path=self.frame_spec._source_path,
                )
            ]

        if self.frame_graph.has_frame(frame):
            return self.frame_graph.relative_pose(MODEL_FRAME, frame)

        return None, [Error(ErrorCode.FRAME_UNRESOLVED, f"Frame '{frame}' could not be found from model '{self.name}'.")]

    def pose(self, frame: str = "") -> Pose | None:
        """Pose of this model relative to another frame, or None if it can't be resolved"""
        pose, errors = self.resolve_pose(frame)
        if errors:
            logger.debug("Unable to resolve pose of '%s' relative to '%s': %s", self.name, frame, errors[0])
        return pose


@dataclass
class World(Base):
    """World containing models

    Attributes:
        name: Name of the world
        models: Models of the world in document order
        frame_graph: Frame graph of the world scope
    """

    name: str
    models: NameRegistry[Model] = field(default_factory=lambda: NameRegistry("model"), repr=False, compare=False)
    frame_graph: FrameGraph = field(init=False, repr=False, compare=False)
    config: InitVar[ParserConfig | None] = None

    def __post_init__(self, config: ParserConfig | None):
        self.frame_graph = FrameGraph(self.name, WORLD_FRAME, config)

    def add_model(self, model: Model) -> Error | None:
        """Add a model while loading; returns DUPLICATE_NAME if the name is taken"""
        if self.frame_graph.state is not GraphState.UNBUILT:
            raise RuntimeError(f"World '{self.name}' is frozen once its frame graph is built")

        if error := self.models.add(model):
            return error

        model._scope = weakref.ref(self)
        self.frame_graph.add_frame(model.name, model.frame_spec, nested=model.frame_graph)
        return None

    def model_count(self) -> int:
        return self.models.count()

    def model_by_index(self, index: int) -> Model | None:
        return self.models.by_index(index)

    def model_by_name(self, name: str) -> Model | None:
        return self.models.by_name(name)

    def model_name_exists(self, name: str) -> bool:
        return self.models.name_exists(name)

    def frame_errors(self) -> list[Error]:
        """Errors found while building the world's frame graph, empty if it is valid"""
        return self.frame_graph.build()
