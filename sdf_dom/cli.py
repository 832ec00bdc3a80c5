import logging
from pathlib import Path

import tyro

from .config import ParserConfig
from .errors import Error, ErrorCode
from .formatters import ErrorFormatter, PoseFormatter, TreeFormatter
from .model import Model
from .pose import Pose
from .root import Root


def _find_model(root: Root, name: str | None) -> Model | None:
    """Find a model by name anywhere in the document

    Args:
        root: Loaded document
        name: Name of the model, or None for the first model of the document

    Returns:
        Matching model, or None if there is none
    """
    for model in root.iter_models():
        if name is None or model.name == name:
            return model
    return None


def _resolve(model: Model, frame: str, relative_to: str) -> tuple[Pose | None, list[Error]]:
    """Pose of a link, joint or the model itself relative to another frame

    Args:
        model: Model containing the frame
        frame: Name of a link or joint of the model, or the model's name
        relative_to: Name of the frame to express the pose in

    Returns:
        Tuple of (pose, errors)
    """
    if frame == model.name:
        return model.resolve_pose(relative_to)

    entity = model.link_by_name(frame) or model.joint_by_name(frame)
    if entity is None:
        return None, [Error(ErrorCode.FRAME_UNRESOLVED, f"No link or joint named '{frame}' in model '{model.name}'.")]

    return entity.resolve_pose(relative_to)


def main(
    path: Path,
    /,
    frame: str | None = None,
    relative_to: str = "",
    model: str | None = None,
    allow_ancestor_frames: bool = False,
    xsd: Path | None = None,
    no_color: bool = False,
    verbose: bool = False,
) -> None:
    """Load an SDF file, report its errors and print frame poses.
    Without --frame, prints every model, link and joint with its pose.

    Args:
        path: Path to the SDF file
        frame: Link, joint or model whose pose to print
        relative_to: Frame to express the pose in, defaults to the enclosing model or world frame
        model: Model containing the frame, defaults to the first model of the document
        allow_ancestor_frames: Resolve frame names declared in enclosing scopes
        xsd: XSD schema to validate the file against
        no_color: Disable ANSI colors
        verbose: Print debug logging
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(name)s: %(message)s")

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    config = ParserConfig(allow_ancestor_frames=allow_ancestor_frames, eager_frame_graphs=True, xsd_path=xsd)
    root = Root(config)
    errors = root.load(path)
    color = not no_color

    if frame is None:
        print(TreeFormatter(root, color=color).format())
    else:
        target_model = _find_model(root, model)
        if target_model is None:
            errors.append(Error(ErrorCode.ELEMENT_MISSING, f"Model '{model}' not found in {path}"))
        else:
            pose, pose_errors = _resolve(target_model, frame, relative_to)
            errors.extend(error for error in pose_errors if error not in errors)
            if pose is not None:
                print(PoseFormatter(frame, relative_to, pose, color=color).format())

    if errors:
        print(ErrorFormatter(errors, color=color).format())
        raise SystemExit(1)


def tyro_cli():
    tyro.cli(main, prog="sdf-dom")


if __name__ == "__main__":
    tyro_cli()
