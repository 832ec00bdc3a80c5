import logging
import math

from lxml import etree

from .config import ParserConfig
from .errors import Error, ErrorCode, element_error
from .frames import MODEL_FRAME, SCOPE_DELIMITER, WORLD_FRAME
from .model import FrameSpec, Joint, Limit, Link, Model, World
from .pose import Pose

__all__ = ["DOMLoader", "LOADERS"]

logger = logging.getLogger(__name__)

# expected tag -> (entity kind, loader method)
LOADERS: dict[str, tuple[str, str]] = {
    "world": ("World", "load_world"),
    "model": ("Model", "load_model"),
    "link": ("Link", "load_link"),
    "joint": ("Joint", "load_joint"),
}

RESERVED_FRAME_NAMES = (MODEL_FRAME, WORLD_FRAME)


class DOMLoader:
    """Loader turning SDF elements into typed DOM entities

    Every ``load_*`` method takes one element and returns a tuple of
    (entity, errors). The entity is None when the element can't be used (wrong
    tag, missing or invalid name); errors lists every problem found in the
    element and its descendants in document order.

    Attributes:
        config: Options controlling loading and frame resolution
        source_file: Path of the file the elements come from, if any
    """

    def __init__(self, config: ParserConfig | None = None, source_file: str | None = None):
        self.config = config or ParserConfig()
        self.source_file = source_file

    def load(self, elem: etree._Element) -> tuple[Link | Joint | Model | World | None, list[Error]]:
        """Load an element with the loader matching its tag

        Args:
            elem: World, model, link or joint element

        Returns:
            Tuple of (entity, errors)
        """
        if elem.tag not in LOADERS:
            return None, [
                element_error(
                    ErrorCode.ELEMENT_INCORRECT_TYPE,
                    f"Element <{elem.tag}> is not one of {', '.join(f'<{tag}>' for tag in LOADERS)}.",
                    elem,
                )
            ]

        _, method = LOADERS[elem.tag]
        return getattr(self, method)(elem)

    def load_world(self, elem: etree._Element) -> tuple[World | None, list[Error]]:
        """Load a world element and its models"""
        if error := self._check_tag(elem, "world"):
            return None, [error]

        errors = []
        name = self._load_name(elem, "world", errors)

        world = World(name=name or "", config=self.config, **self._get_source_metadata(elem))

        for model_elem in elem.iterchildren("model"):
            model, model_errors = self.load_model(model_elem)
            errors.extend(model_errors)
            if model is not None and (error := world.add_model(model)):
                errors.append(error)

        if not name:
            return None, errors

        logger.debug("Loaded world '%s' with %d model(s)", name, world.model_count())
        return world, errors

    def load_model(self, elem: etree._Element) -> tuple[Model | None, list[Error]]:
        """Load a model element, its links, joints and nested models"""
        if error := self._check_tag(elem, "model"):
            return None, [error]

        errors = []
        name = self._load_name(elem, "model", errors)
        valid_name = name is not None and self._check_frame_name(elem, name, "model", errors)

        frame_spec = self._parse_pose(elem, errors)
        static = elem.findtext("static", "false").strip().lower() in ("true", "1")

        model = Model(
            name=name or "",
            frame_spec=frame_spec,
            static=static,
            config=self.config,
            **self._get_source_metadata(elem),
        )

        adders = {Link: model.add_link, Joint: model.add_joint, Model: model.add_model}
        for child_elem in elem.iterchildren("link", "joint", "model"):
            child, child_errors = self.load(child_elem)
            errors.extend(child_errors)
            if child is not None and (error := adders[type(child)](child)):
                errors.append(error)

        errors.extend(self._check_joint_links(model))

        if not valid_name:
            return None, errors

        logger.debug(
            "Loaded model '%s' with %d link(s), %d joint(s), %d nested model(s)",
            name,
            model.link_count(),
            model.joint_count(),
            model.model_count(),
        )
        return model, errors

    def load_link(self, elem: etree._Element) -> tuple[Link | None, list[Error]]:
        """Load a link element; physical payloads are ignored"""
        if error := self._check_tag(elem, "link"):
            return None, [error]

        errors = []
        name = self._load_name(elem, "link", errors)
        valid_name = name is not None and self._check_frame_name(elem, name, "link", errors)

        frame_spec = self._parse_pose(elem, errors)

        if not valid_name:
            return None, errors

        return Link(name=name, frame_spec=frame_spec, **self._get_source_metadata(elem)), errors  # ty: ignore[invalid-argument-type]

    def load_joint(self, elem: etree._Element) -> tuple[Joint | None, list[Error]]:
        """Load a joint element"""
        if error := self._check_tag(elem, "joint"):
            return None, [error]

        errors = []
        name = self._load_name(elem, "joint", errors)
        valid_name = name is not None and self._check_frame_name(elem, name, "joint", errors)

        joint_type = elem.get("type")
        if not joint_type:
            errors.append(
                element_error(
                    ErrorCode.ATTRIBUTE_MISSING,
                    f"A joint type is required, but the type of joint '{name}' is not set.",
                    elem,
                )
            )

        parent = self._load_link_reference(elem, "parent", name, errors)
        child = self._load_link_reference(elem, "child", name, errors)

        frame_spec = self._parse_pose(elem, errors)
        axis = self._parse_axis(elem, errors)
        limit = self._parse_limit(elem, errors)

        if not valid_name:
            return None, errors

        joint = Joint(
            name=name,  # ty: ignore[invalid-argument-type]
            frame_spec=frame_spec,
            type=joint_type or "",
            parent=parent,
            child=child,
            axis=axis,
            limit=limit,
            **self._get_source_metadata(elem),
        )
        return joint, errors

    def _check_tag(self, elem: etree._Element, tag: str) -> Error | None:
        if elem.tag == tag:
            return None

        kind, _ = LOADERS[tag]
        return element_error(
            ErrorCode.ELEMENT_INCORRECT_TYPE,
            f"Attempting to load a {kind}, but the provided SDF element is a <{elem.tag}>, not a <{tag}>.",
            elem,
        )

    def _load_name(self, elem: etree._Element, kind: str, errors: list[Error]) -> str | None:
        name = elem.get("name")
        if name:
            return name

        errors.append(
            element_error(ErrorCode.ATTRIBUTE_MISSING, f"A {kind} name is required, but the name is not set.", elem)
        )
        return None

    def _check_frame_name(self, elem: etree._Element, name: str, kind: str, errors: list[Error]) -> bool:
        """Check that a name can be used as a frame name"""
        if SCOPE_DELIMITER in name:
            message = f"The {kind} name '{name}' must not contain the scope delimiter '{SCOPE_DELIMITER}'."
        elif name in RESERVED_FRAME_NAMES:
            message = f"The {kind} name '{name}' is reserved."
        else:
            return True

        errors.append(element_error(ErrorCode.ATTRIBUTE_INVALID, message, elem))
        return False

    def _load_link_reference(
        self, joint_elem: etree._Element, tag: str, joint_name: str | None, errors: list[Error]
    ) -> str:
        value = joint_elem.findtext(tag)
        if value is None or value.strip() == "":
            errors.append(
                element_error(
                    ErrorCode.ELEMENT_MISSING,
                    f"The {tag} element is missing from joint '{joint_name}'.",
                    joint_elem,
                )
            )
            return ""
        return value.strip()

    def _check_joint_links(self, model: Model) -> list[Error]:
        """Check that joint parents and children name links of the model"""
        errors = []

        for joint in model.joints:
            if joint.parent and joint.child and joint.parent == joint.child:
                errors.append(
                    Error(
                        ErrorCode.JOINT_PARENT_SAME_AS_CHILD,
                        f"Joint '{joint.name}' has the same parent and child link '{joint.parent}'.",
                        line_number=joint._line_number,
                        source_path=joint._source_path,
                    )
                )
                continue

            if joint.parent and joint.parent != WORLD_FRAME and not self._is_link_frame(model, joint.parent):
                errors.append(
                    Error(
                        ErrorCode.JOINT_PARENT_LINK_INVALID,
                        f"Parent '{joint.parent}' of joint '{joint.name}' is not a link of model '{model.name}'.",
                        line_number=joint._line_number,
                        source_path=joint._source_path,
                    )
                )

            if joint.child and not self._is_link_frame(model, joint.child):
                errors.append(
                    Error(
                        ErrorCode.JOINT_CHILD_LINK_INVALID,
                        f"Child '{joint.child}' of joint '{joint.name}' is not a link of model '{model.name}'.",
                        line_number=joint._line_number,
                        source_path=joint._source_path,
                    )
                )

        return errors

    def _is_link_frame(self, model: Model, name: str) -> bool:
        """Whether a name is a link or nested model of a model, possibly scoped into nested models"""
        *scopes, leaf = name.split(SCOPE_DELIMITER)
        for scope in scopes:
            model = model.model_by_name(scope)
            if model is None:
                return False
        return model.link_name_exists(leaf) or model.model_name_exists(leaf)

    def _parse_vector(self, vector: str, length: int) -> tuple[float, ...]:
        """Parse space-separated string into tuple of floats

        Args:
            vector: Space-separated string of numbers
            length: Expected number of values

        Returns:
            Tuple of floats

        Raises:
            ValueError: If format is invalid or a value is not finite
        """
        parts = vector.strip().split()
        if len(parts) != length:
            raise ValueError(f"Expected {length} space-separated values, got {len(parts)}: '{vector}'")

        values = tuple(float(x) for x in parts)
        if not all(math.isfinite(v) for v in values):
            raise ValueError(f"Expected finite values: '{vector}'")

        return values

    def _parse_pose(self, parent_elem: etree._Element, errors: list[Error]) -> FrameSpec:
        """Parse pose element

        Args:
            parent_elem: Parent element containing pose element
            errors: Error list to append problems to

        Returns:
            FrameSpec with the pose and its relative_to frame, identity relative to the enclosing frame if no pose is defined
        """
        pose_elem = parent_elem.find("pose")

        if pose_elem is None:
            return FrameSpec()

        # "frame" is the attribute name used before relative_to existed
        relative_to = pose_elem.get("relative_to", pose_elem.get("frame", "")).strip()
        metadata = self._get_source_metadata(pose_elem)

        pose_text = pose_elem.text
        if pose_text is None or pose_text.strip() == "":
            return FrameSpec(relative_to=relative_to, **metadata)

        rotation_format = pose_elem.get("rotation_format", "euler_rpy")
        degrees = pose_elem.get("degrees", "false").strip().lower() in ("true", "1")

        try:
            if rotation_format == "euler_rpy":
                values = self._parse_vector(pose_text, 6)
                rpy = values[3:6]
                if degrees:
                    rpy = tuple(math.radians(angle) for angle in rpy)
                pose = Pose.from_xyz_rpy(*values[0:3], *rpy)

            elif rotation_format == "quat_xyzw":
                values = self._parse_vector(pose_text, 7)
                pose = Pose.from_xyz_quat(values[0:3], values[3:7])  # ty: ignore[invalid-argument-type]

            else:
                raise ValueError(f"Unknown rotation_format '{rotation_format}'")

        except ValueError as e:
            errors.append(element_error(ErrorCode.ELEMENT_INVALID, f"Invalid pose: {e}", pose_elem))
            return FrameSpec(relative_to=relative_to, **metadata)

        return FrameSpec(pose=pose, relative_to=relative_to, **metadata)

    def _parse_axis(self, joint_elem: etree._Element, errors: list[Error]) -> tuple[float, float, float]:
        """Parse axis element

        Args:
            joint_elem: Joint element containing axis element
            errors: Error list to append problems to

        Returns:
            Axis as tuple of 3 floats, or (0.0, 0.0, 1.0) if no axis is defined
        """
        xyz_elem = joint_elem.find("axis/xyz")
        if xyz_elem is None or not (xyz_elem.text or "").strip():
            return (0.0, 0.0, 1.0)

        try:
            return self._parse_vector(xyz_elem.text, 3)  # ty: ignore[invalid-return-type, invalid-argument-type]
        except ValueError as e:
            errors.append(element_error(ErrorCode.ELEMENT_INVALID, f"Invalid axis: {e}", xyz_elem))
            return (0.0, 0.0, 1.0)

    def _parse_limit(self, joint_elem: etree._Element, errors: list[Error]) -> Limit | None:
        """Parse limit element

        Args:
            joint_elem: Joint element containing limit element
            errors: Error list to append problems to

        Returns:
            Limit object, or None if no limit is defined
        """
        limit_elem = joint_elem.find("axis/limit")
        if limit_elem is None:
            return None

        defaults = Limit()
        values = {}
        for key in ("lower", "upper", "effort", "velocity"):
            text = limit_elem.findtext(key)
            if text is None:
                values[key] = getattr(defaults, key)
                continue
            try:
                values[key] = float(text)
            except ValueError:
                errors.append(
                    element_error(ErrorCode.ELEMENT_INVALID, f"Invalid joint limit {key}: '{text}'", limit_elem)
                )
                values[key] = getattr(defaults, key)

        return Limit(**values, **self._get_source_metadata(limit_elem))

    def _get_source_metadata(self, elem: etree._Element) -> dict:
        """Get source tracking metadata for element

        Args:
            elem: Element to get metadata for

        Returns:
            Dict with _line_number, _source_path, _source_file
        """
        return {
            "_line_number": elem.sourceline,
            "_source_path": elem.getroottree().getpath(elem),
            "_source_file": self.source_file,
        }
