from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable
from typing import Any

from .errors import Error
from .model import Model, World
from .pose import Pose
from .root import Root

__all__ = ["StringFormatter", "ErrorFormatter", "TreeFormatter", "PoseFormatter"]

# ANSI color codes
RED = "\033[31m"
GREEN = "\033[32m"
RESET = "\033[0m"


class StringFormatter(ABC):
    """Base class for all string formatters

    Attributes:
        color: Whether to apply ANSI colors
    """

    def __init__(self, color: bool = True):
        self.color = color

    @abstractmethod
    def format(self) -> str:
        """Format the content"""
        pass

    def _colorize(self, text: str, color: str) -> str:
        """Apply ANSI color to text

        Args:
            text: Text to colorize
            color: ANSI color code to apply

        Returns:
            Colorized string, or the text unchanged if colors are disabled
        """
        return f"{color}{text}{RESET}" if self.color else text

    def _format_value(self, value: Any, precision: int = 6) -> str:
        """Format a single value for display

        Args:
            value: Value to format
            precision: Number of decimal places for floats

        Returns:
            Formatted string of the value
        """
        if value is None:
            return "None"
        if isinstance(value, float):
            # avoid printing -0.0
            return str(round(value, precision) + 0.0)
        if isinstance(value, (tuple, list)):
            return f"({', '.join(self._format_value(v, precision) for v in value)})"
        return str(value)

    def _format_pose(self, pose: Pose | None) -> str:
        if pose is None:
            return self._colorize("unresolved", RED)
        return f"xyz {self._format_value(pose.xyz)} rpy {self._format_value(pose.rpy)}"

    def _wrap_bars(self, text: str) -> str:
        """Wrap text in horiztonal bars (━)

        Args:
            text: Text to wrap

        Returns:
            Formatted string
        """
        return f"━━━ {text} ━━━"


class ErrorFormatter(StringFormatter):
    """Formatter listing errors in the order they were reported"""

    def __init__(self, errors: Iterable[Error], color: bool = True):
        super().__init__(color)
        self.errors = list(errors)

    def format(self) -> str:
        """Format the errors

        Returns:
            Formatted string, empty if there are no errors
        """
        if not self.errors:
            return ""

        counts = Counter(error.code.name for error in self.errors)
        summary = ", ".join(f"{count} {code}" for code, count in sorted(counts.items()))

        lines = [self._wrap_bars(f"ERRORS ({summary})"), ""]
        for error in self.errors:
            location = f"line {error.line_number}: " if error.line_number is not None else ""
            lines.append(f"  • {location}{self._colorize(error.code.name, RED)} {error.message}")

        return "\n".join(lines)


class TreeFormatter(StringFormatter):
    """Formatter printing every world, model, link and joint with its pose

    Models are shown relative to their enclosing scope, links and joints
    relative to their model frame.
    """

    def __init__(self, root: Root, color: bool = True):
        super().__init__(color)
        self.root = root

    def format(self) -> str:
        """Format the document tree

        Returns:
            Formatted string
        """
        lines = [f"SDF {self.root.version}", ""]

        for world in self.root.worlds:
            lines.extend(self._format_world(world))
        for model in self.root.models:
            lines.extend(self._format_model(model, indent=""))
            lines.append("")

        return "\n".join(lines).rstrip()

    def _format_world(self, world: World) -> list[str]:
        lines = [self._wrap_bars(f"World: {world.name}"), ""]
        for model in world.models:
            lines.extend(self._format_model(model, indent=""))
            lines.append("")
        return lines

    def _format_model(self, model: Model, indent: str) -> list[str]:
        """Format a model and, recursively, its nested models

        Args:
            model: Model to format
            indent: Prefix for every line

        Returns:
            List of formatted lines
        """
        lines = [f"{indent}Model: {self._colorize(model.name, GREEN)}  {self._format_pose(model.pose())}"]

        for link in model.links:
            lines.append(f"{indent}  Link: {link.name}  {self._format_pose(link.pose())}")
        for joint in model.joints:
            lines.append(
                f"{indent}  Joint: {joint.name} [{joint.type}] {joint.parent} → {joint.child}  "
                f"{self._format_pose(joint.pose())}"
            )
        for nested in model.models:
            lines.extend(self._format_model(nested, indent=indent + "  "))

        return lines


class PoseFormatter(StringFormatter):
    """Formatter for a single relative pose query"""

    def __init__(self, frame: str, relative_to: str, pose: Pose, color: bool = True):
        super().__init__(color)
        self.frame = frame
        self.relative_to = relative_to
        self.pose = pose

    def format(self) -> str:
        """Format the pose

        Returns:
            Formatted string
        """
        target = self.relative_to or "enclosing frame"
        return f"{self._colorize(self.frame, GREEN)} relative to {target}: {self._format_pose(self.pose)}"
