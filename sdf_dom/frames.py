"""Frame graph resolution for model and world scopes

Every model (and world) owns a ``FrameGraph``. Its nodes are the scope's own
frame plus one frame per direct link, joint and nested model; every child adds
one edge from the frame named by its ``relative_to`` to itself, carrying the
authored pose. Relative poses between any two frames are found by walking both
edge chains back to the scope frame and composing along the way.

Resolved chains end at an anchor: the scope frame itself, or a frame of an
enclosing scope when ancestor lookups are enabled. Anchors in enclosing scopes
are only followed at query time, so building a graph never needs its parent to
be built.
"""

import logging
import threading
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .config import ParserConfig
from .errors import Error, ErrorCode
from .pose import Pose

if TYPE_CHECKING:
    from .model import FrameSpec

__all__ = ["FrameGraph", "GraphState", "MODEL_FRAME", "WORLD_FRAME", "SCOPE_DELIMITER"]

logger = logging.getLogger(__name__)

MODEL_FRAME = "__model__"
WORLD_FRAME = "world"
SCOPE_DELIMITER = "::"


class GraphState(Enum):
    UNBUILT = "unbuilt"
    BUILT = "built"
    FAILED = "failed"


@dataclass(frozen=True)
class _Anchored:
    """Pose of a frame relative to an anchor frame

    Attributes:
        level: Number of scopes above this graph where the anchor lives (0 is this graph)
        anchor: Name of the anchor frame in that scope
        pose: Pose of the frame in the anchor frame
    """

    level: int
    anchor: str
    pose: Pose


class _FrameError(Exception):
    def __init__(self, error: Error):
        super().__init__(error.message)
        self.error = error


class FrameGraph:
    """Graph of named frames for one model or world scope

    Attributes:
        scope_name: Name of the model or world owning the graph
        scope_frame: Name of the scope's own frame ("__model__" or "world")
        config: Options controlling frame visibility
    """

    def __init__(self, scope_name: str, scope_frame: str = MODEL_FRAME, config: ParserConfig | None = None):
        self.scope_name = scope_name
        self.scope_frame = scope_frame
        self.config = config or ParserConfig()

        self._specs: dict[str, "FrameSpec"] = {}
        self._nested: dict[str, FrameGraph] = {}
        self._parent: weakref.ref | None = None

        self._state = GraphState.UNBUILT
        self._errors: list[Error] = []
        self._resolved: dict[str, _Anchored] = {}
        self._lock = threading.RLock()

    @property
    def kind(self) -> str:
        return "world" if self.scope_frame == WORLD_FRAME else "model"

    @property
    def state(self) -> GraphState:
        return self._state

    @property
    def parent(self) -> "FrameGraph | None":
        return self._parent() if self._parent is not None else None

    def add_frame(self, name: str, frame_spec: "FrameSpec", nested: "FrameGraph | None" = None):
        """Register a child frame

        Args:
            name: Name of the link, joint or nested model
            frame_spec: Authored pose of the child and the frame it is relative to
            nested: Frame graph of the child when the child is a nested model
        """
        if self._state is not GraphState.UNBUILT:
            raise RuntimeError(f"Frame graph of {self.kind} '{self.scope_name}' is frozen")

        self._specs[name] = frame_spec
        if nested is not None:
            nested._parent = weakref.ref(self)
            self._nested[name] = nested

    def has_frame(self, name: str) -> bool:
        """Whether a name denotes a frame visible from this scope without leaving it"""
        return self._is_scope_frame(name) or self._has_local(name)

    def build(self) -> list[Error]:
        """Resolve every frame of the scope once

        Returns:
            Errors found while building, empty if the graph is valid
        """
        with self._lock:
            if self._state is GraphState.UNBUILT:
                self._build()
            return list(self._errors)

    def relative_pose(self, frame: str, target: str = "") -> tuple[Pose | None, list[Error]]:
        """Pose of a frame as seen from a target frame

        Args:
            frame: Name of a frame in this scope
            target: Name of the frame to express the pose in, defaults to the scope frame

        Returns:
            Tuple of (pose, errors); pose is None when errors is non-empty
        """
        errors = self.build()
        if errors:
            return None, errors

        if frame == target:
            return Pose(), []

        try:
            with self._lock:
                frame_res = self._lookup(frame)
                target_res = self._lookup(target)

            frame_graph, frame_pose = self._reduce(self, frame_res)
            target_graph, target_pose = self._reduce(self, target_res)

            # lift the deeper side until both are expressed in the same scope
            while frame_graph is not target_graph:
                if frame_graph._depth() >= target_graph._depth():
                    frame_graph, frame_pose = self._lift(frame_graph, frame_pose)
                else:
                    target_graph, target_pose = self._lift(target_graph, target_pose)
        except _FrameError as e:
            return None, [e.error]

        return target_pose.inverse().compose(frame_pose), []

    def _is_scope_frame(self, name: str) -> bool:
        return name in ("", self.scope_frame)

    def _has_local(self, name: str) -> bool:
        if name in self._specs:
            return True

        if SCOPE_DELIMITER in name:
            head, rest = name.split(SCOPE_DELIMITER, 1)
            nested = self._nested.get(head)
            return nested is not None and rest != "" and nested.has_frame(rest)

        return False

    def _depth(self) -> int:
        depth, graph = 0, self.parent
        while graph is not None:
            depth, graph = depth + 1, graph.parent
        return depth

    def _ancestor(self, level: int) -> "FrameGraph":
        graph = self
        for _ in range(level):
            parent = graph.parent
            if parent is None:
                raise _FrameError(
                    Error(
                        ErrorCode.FRAME_UNRESOLVED,
                        f"Enclosing scope of {graph.kind} '{graph.scope_name}' is no longer available.",
                    )
                )
            graph = parent
        return graph

    def _build(self):
        errors: list[Error] = []
        failed: set[str] = set()

        for name in self._specs:
            self._walk(name, failed, errors)

        self._errors = errors
        self._state = GraphState.FAILED if errors else GraphState.BUILT

        if errors:
            logger.debug("Frame graph of %s '%s' is invalid: %d error(s)", self.kind, self.scope_name, len(errors))
        else:
            logger.debug("Built frame graph of %s '%s' with %d frame(s)", self.kind, self.scope_name, len(self._specs))

    def _walk(self, name: str, failed: set[str], errors: list[Error]) -> _Anchored | None:
        """Follow relative_to edges from a frame until an anchor is reached

        Args:
            name: Frame to resolve
            failed: Frames already known to be unresolvable, updated in place
            errors: Error list to append newly found problems to

        Returns:
            Anchored pose of the frame, or None if it can't be resolved
        """
        chain: list[tuple[str, Pose]] = []
        on_chain: set[str] = set()
        base: _Anchored | None = None
        current = name

        while True:
            if current in self._resolved:
                base = self._resolved[current]
                break

            if current in failed:
                break

            if current in on_chain:
                names = [node for node, _ in chain]
                cycle = names[names.index(current) :] + [current]
                errors.append(
                    Error(
                        ErrorCode.FRAME_CYCLE,
                        f"relative_to cycle detected in {self.kind} '{self.scope_name}': {' -> '.join(cycle)}",
                    )
                )
                break

            on_chain.add(current)

            try:
                source, pose = self._edge(current)
            except _FrameError as e:
                errors.append(e.error)
                chain.append((current, Pose()))
                break

            chain.append((current, pose))

            if isinstance(source, _Anchored):
                base = source
                break

            current = source

        if base is None:
            failed.update(node for node, _ in chain)
            return None

        for node, pose in reversed(chain):
            base = _Anchored(base.level, base.anchor, base.pose.compose(pose))
            self._resolved[node] = base

        return self._resolved[name]

    def _edge(self, name: str) -> tuple[str | _Anchored, Pose]:
        """Source of the single edge ending at a frame, and the pose it carries"""
        if name not in self._specs and SCOPE_DELIMITER in name:
            head, rest = name.split(SCOPE_DELIMITER, 1)
            inner = self._nested[head]._anchored(rest)

            if inner.level == 0:
                return head, inner.pose
            if inner.level == 1:
                if self._is_scope_frame(inner.anchor):
                    return _Anchored(0, self.scope_frame, Pose()), inner.pose
                return inner.anchor, inner.pose
            return _Anchored(inner.level - 1, inner.anchor, Pose()), inner.pose

        spec = self._specs[name]
        return self._classify(spec.relative_to, name, spec), spec.pose

    def _classify(self, ref: str, name: str, spec: "FrameSpec") -> str | _Anchored:
        if self._is_scope_frame(ref):
            return _Anchored(0, self.scope_frame, Pose())

        if self._has_local(ref):
            return ref

        found = self._find_in_ancestors(ref)
        if found is not None:
            return found

        raise _FrameError(
            Error(
                ErrorCode.FRAME_UNRESOLVED,
                f"relative_to name '{ref}' of frame '{name}' does not match a frame in "
                f"{self.kind} '{self.scope_name}'.",
                line_number=getattr(spec, "_line_number", None),
                source_path=getattr(spec, "_source_path", None),
            )
        )

    def _find_in_ancestors(self, ref: str) -> _Anchored | None:
        if not self.config.allow_ancestor_frames:
            return None

        level, graph = 1, self.parent
        while graph is not None:
            if ref != "" and graph.has_frame(ref):
                return _Anchored(level, ref, Pose())
            level, graph = level + 1, graph.parent

        return None

    def _anchored(self, name: str) -> _Anchored:
        """Anchored pose of any frame name visible from this scope"""
        errors = self.build()
        if errors:
            raise _FrameError(
                Error(
                    ErrorCode.FRAME_UNRESOLVED,
                    f"Frame '{name}' can't be resolved because the frame graph of "
                    f"{self.kind} '{self.scope_name}' is invalid.",
                )
            )

        with self._lock:
            return self._lookup(name)

    def _lookup(self, name: str) -> _Anchored:
        if self._is_scope_frame(name):
            return _Anchored(0, self.scope_frame, Pose())

        if name in self._resolved:
            return self._resolved[name]

        if self._has_local(name):
            walk_errors: list[Error] = []
            result = self._walk(name, set(), walk_errors)
            if result is None:
                raise _FrameError(walk_errors[0])
            return result

        found = self._find_in_ancestors(name)
        if found is not None:
            return found

        raise _FrameError(
            Error(
                ErrorCode.FRAME_UNRESOLVED,
                f"Frame '{name}' could not be found in {self.kind} '{self.scope_name}'.",
            )
        )

    @staticmethod
    def _reduce(graph: "FrameGraph", res: _Anchored) -> tuple["FrameGraph", Pose]:
        """Follow anchors in enclosing scopes until the pose is relative to a scope frame"""
        pose = res.pose
        while res.level > 0:
            graph = graph._ancestor(res.level)
            res = graph._anchored(res.anchor)
            pose = res.pose.compose(pose)
        return graph, pose

    @staticmethod
    def _lift(graph: "FrameGraph", pose: Pose) -> tuple["FrameGraph", Pose]:
        """Express a pose given in a scope frame in the enclosing scope frame"""
        parent = graph._ancestor(1)
        scope = parent._anchored(graph.scope_name)
        return FrameGraph._reduce(parent, _Anchored(scope.level, scope.anchor, scope.pose.compose(pose)))

    def __repr__(self) -> str:
        return f"FrameGraph({self.kind} '{self.scope_name}', {self._state.value}, frames={list(self._specs)})"
