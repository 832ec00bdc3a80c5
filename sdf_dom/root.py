import logging
from collections.abc import Iterator
from pathlib import Path

from lxml import etree

from .config import ParserConfig
from .errors import Error, ErrorCode, element_error
from .loader import DOMLoader
from .model import Model, World
from .registry import NameRegistry

__all__ = ["Root"]

logger = logging.getLogger(__name__)


class Root:
    """SDF document: worlds and top-level models

    Attributes:
        config: Options controlling loading and frame resolution
        version: Value of the <sdf version> attribute, None until loaded
        source_file: Path of the loaded file, None when loaded from a string or element
        worlds: Worlds of the document in document order
        models: Models placed directly under <sdf> in document order
    """

    def __init__(self, config: ParserConfig | None = None):
        self.config = config or ParserConfig()
        self.version: str | None = None
        self.source_file: str | None = None
        self.worlds: NameRegistry[World] = NameRegistry("world")
        self.models: NameRegistry[Model] = NameRegistry("model")

    def load(self, source: Path | str | etree._Element | etree._ElementTree) -> list[Error]:
        """Load a document from a file or an already parsed tree

        Args:
            source: Path to an SDF file, or a parsed <sdf> element or element tree

        Returns:
            Errors found in the document, empty on success
        """
        if isinstance(source, etree._ElementTree):
            source = source.getroot()

        if isinstance(source, etree._Element):
            self.source_file = None
            return self._load_tree(source)

        if isinstance(source, (str, Path)):
            return self._load_file(Path(source))

        raise TypeError(f"Expected a path or an lxml element, got {type(source).__name__}")

    def load_string(self, text: str | bytes) -> list[Error]:
        """Load a document from an in-memory SDF string

        Args:
            text: SDF document

        Returns:
            Errors found in the document, empty on success
        """
        self.source_file = None
        data = text.encode() if isinstance(text, str) else text

        try:
            elem = etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            return [Error(ErrorCode.STRING_READ, f"Unable to parse SDF string: {e}")]

        return self._load_tree(elem)

    def _load_file(self, path: Path) -> list[Error]:
        if not path.exists():
            return [Error(ErrorCode.FILE_READ, f"SDF file not found: {path}")]

        try:
            tree = etree.parse(str(path))
        except (OSError, etree.XMLSyntaxError) as e:
            return [Error(ErrorCode.FILE_READ, f"Unable to read file '{path}': {e}")]

        self.source_file = str(path)
        logger.debug("Parsed SDF file %s", path)
        return self._load_tree(tree.getroot())

    def _validate(self, elem: etree._Element, xsd_path: Path) -> list[Error]:
        """Validate a document against the configured XSD schema

        Returns:
            One SCHEMA_INVALID error per violation, FILE_READ if the schema is missing
        """
        if not xsd_path.exists():
            return [Error(ErrorCode.FILE_READ, f"XSD schema not found: {xsd_path}")]

        try:
            with open(xsd_path, "rb") as f:
                schema_doc = etree.parse(f)
            schema = etree.XMLSchema(schema_doc)
        except (etree.XMLSyntaxError, etree.XMLSchemaParseError) as e:
            return [Error(ErrorCode.SCHEMA_INVALID, f"Unable to parse XSD schema '{xsd_path}': {e}")]

        if schema.validate(elem.getroottree()):
            return []

        return [
            Error(
                ErrorCode.SCHEMA_INVALID,
                entry.message,
                line_number=entry.line,
                source_path=getattr(entry, "path", None),
            )
            for entry in schema.error_log
        ]

    def _load_tree(self, elem: etree._Element) -> list[Error]:
        self.version = None
        self.worlds = NameRegistry("world")
        self.models = NameRegistry("model")

        if elem.tag != "sdf":
            return [
                element_error(
                    ErrorCode.ELEMENT_INCORRECT_TYPE,
                    f"Attempting to load a Root, but the provided element is a <{elem.tag}>, not an <sdf>.",
                    elem,
                )
            ]

        if self.config.xsd_path is not None and (errors := self._validate(elem, Path(self.config.xsd_path))):
            return errors

        errors = []

        self.version = elem.get("version")
        if not self.version:
            errors.append(
                element_error(ErrorCode.ATTRIBUTE_MISSING, "SDF version attribute is required, but it is not set.", elem)
            )

        loader = DOMLoader(self.config, source_file=self.source_file)

        for child_elem in elem.iterchildren("world", "model"):
            entity, child_errors = loader.load(child_elem)
            errors.extend(child_errors)
            if entity is None:
                continue

            registry = self.worlds if isinstance(entity, World) else self.models
            if error := registry.add(entity):  # ty: ignore[invalid-argument-type]
                errors.append(error)

        if self.config.eager_frame_graphs:
            errors.extend(self._build_frame_graphs())

        logger.debug(
            "Loaded SDF %s with %d world(s), %d model(s) and %d error(s)",
            self.version,
            self.world_count(),
            self.model_count(),
            len(errors),
        )
        return errors

    def _build_frame_graphs(self) -> list[Error]:
        errors = []
        for world in self.worlds:
            errors.extend(world.frame_errors())
        for model in self.iter_models():
            errors.extend(model.frame_errors())
        return errors

    def iter_models(self) -> Iterator[Model]:
        """Every model of the document, including world and nested models, depth-first in document order"""
        stack = [model for world in self.worlds for model in world.models] + list(self.models)
        stack.reverse()
        while stack:
            model = stack.pop()
            yield model
            stack.extend(reversed(list(model.models)))

    def world_count(self) -> int:
        return self.worlds.count()

    def world_by_index(self, index: int) -> World | None:
        return self.worlds.by_index(index)

    def world_by_name(self, name: str) -> World | None:
        return self.worlds.by_name(name)

    def world_name_exists(self, name: str) -> bool:
        return self.worlds.name_exists(name)

    def model_count(self) -> int:
        return self.models.count()

    def model_by_index(self, index: int) -> Model | None:
        return self.models.by_index(index)

    def model_by_name(self, name: str) -> Model | None:
        return self.models.by_name(name)

    def model_name_exists(self, name: str) -> bool:
        return self.models.name_exists(name)
