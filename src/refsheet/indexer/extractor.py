"""Declaration extraction from Rust source using tree-sitter."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

import tree_sitter_rust
from tree_sitter import Language, Parser

from refsheet.exceptions import ExtractionError, ExtractionErrorKind

RUST_LANGUAGE = Language(tree_sitter_rust.language())

UNKNOWN_TYPE = "UnknownType"


class DeclKind(str, Enum):
    """Closed set of declaration kinds stored in the index."""

    FUNCTION = "Function"
    STRUCT = "Struct"
    ENUM = "Enum"
    IMPL_METHOD = "ImplMethod"
    TRAIT_METHOD = "TraitMethod"

    @classmethod
    def parse(cls, value: str) -> DeclKind:
        """Return the kind for a stored "Item Type" string.

        Tables written by earlier releases used ``ImplFn``/``TraitFn``;
        those are read as their current equivalents.

        Raises:
            ValueError: If value names no known kind.
        """
        legacy = {"ImplFn": cls.IMPL_METHOD, "TraitFn": cls.TRAIT_METHOD}
        if value in legacy:
            return legacy[value]
        return cls(value)


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """A single declaration in the index.

    The (file, kind, name) triple is the entry's identity.

    Attributes:
        file: Source path exactly as produced by the scanner.
        kind: Declaration kind.
        name: Identifier; ``Owner::method`` for impl and trait methods.
    """

    file: str
    kind: DeclKind
    name: str

    def row(self) -> tuple[str, str, str]:
        return (self.file, self.kind.value, self.name)

    def sort_key(self) -> tuple[str, str, str]:
        return (self.file, self.name, self.kind.value)


class ItemVariant(Enum):
    """Top-level syntax items the extraction walk distinguishes."""

    FUNCTION = "function_item"
    STRUCT = "struct_item"
    ENUM = "enum_item"
    IMPL = "impl_item"
    TRAIT = "trait_item"
    IGNORED = None

    @classmethod
    def classify(cls, node_type: str) -> ItemVariant:
        for variant in cls:
            if variant.value == node_type:
                return variant
        return cls.IGNORED


class DeclarationExtractor:
    """Extracts index entries from the top-level items of Rust files.

    The walk is shallow: top-level items plus the direct children of impl
    and trait bodies. Instances are safe to share between threads; each
    thread parses with its own tree-sitter parser.
    """

    METHOD_NODES: ClassVar[frozenset[str]] = frozenset(
        {"function_item", "function_signature_item"}
    )
    NAMED_TYPE_NODES: ClassVar[frozenset[str]] = frozenset(
        {"type_identifier", "primitive_type"}
    )

    def __init__(self) -> None:
        self._local = threading.local()

    def extract_file(self, path: str, file: str | None = None) -> list[IndexEntry]:
        """Read a file and extract its declarations.

        Args:
            path: Path to a source file.
            file: Text recorded in every entry; defaults to path.

        Returns:
            Entries in textual order.

        Raises:
            ExtractionError: If the file cannot be read or does not parse.
        """
        try:
            source = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ExtractionError(
                ExtractionErrorKind.UNREADABLE, file or path, str(exc)
            ) from exc
        return self.extract(source, file or path)

    def extract(self, source: str, file: str) -> list[IndexEntry]:
        """Extract declarations from source text.

        Args:
            source: Full text of one file.
            file: Path recorded in the produced entries.

        Returns:
            Entries in textual order.

        Raises:
            ExtractionError: With kind PARSE_FAILURE if the text is not valid Rust.
        """
        tree = self._parser().parse(source.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            raise ExtractionError(
                ExtractionErrorKind.PARSE_FAILURE, file, self._describe_error(root)
            )

        entries: list[IndexEntry] = []
        for node in root.named_children:
            variant = ItemVariant.classify(node.type)
            if variant is ItemVariant.FUNCTION:
                entries.append(IndexEntry(file, DeclKind.FUNCTION, self._name(node)))
            elif variant is ItemVariant.STRUCT:
                entries.append(IndexEntry(file, DeclKind.STRUCT, self._name(node)))
            elif variant is ItemVariant.ENUM:
                entries.append(IndexEntry(file, DeclKind.ENUM, self._name(node)))
            elif variant is ItemVariant.IMPL:
                owner = self._owning_type_name(node.child_by_field_name("type"))
                for method in self._methods(node):
                    entries.append(IndexEntry(file, DeclKind.IMPL_METHOD, f"{owner}::{method}"))
            elif variant is ItemVariant.TRAIT:
                trait = self._name(node)
                for method in self._methods(node):
                    entries.append(IndexEntry(file, DeclKind.TRAIT_METHOD, f"{trait}::{method}"))
            elif variant is ItemVariant.IGNORED:
                continue
        return entries

    def _parser(self) -> Parser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser(RUST_LANGUAGE)
            self._local.parser = parser
        return parser

    def _methods(self, node: Any) -> list[str]:
        """Names of method-like items directly inside an impl or trait body."""
        body = node.child_by_field_name("body")
        if body is None:
            return []
        return [
            self._name(child) for child in body.named_children if child.type in self.METHOD_NODES
        ]

    def _owning_type_name(self, type_node: Any) -> str:
        """Last path segment of an impl self-type, or UNKNOWN_TYPE."""
        if type_node is None:
            return UNKNOWN_TYPE
        if type_node.type == "generic_type":
            type_node = type_node.child_by_field_name("type")
            if type_node is None:
                return UNKNOWN_TYPE
        if type_node.type in self.NAMED_TYPE_NODES:
            return self._text(type_node)
        if type_node.type == "scoped_type_identifier":
            return self._name(type_node)
        return UNKNOWN_TYPE

    @classmethod
    def _name(cls, node: Any) -> str:
        name_node = node.child_by_field_name("name")
        return cls._text(name_node) if name_node is not None else "<anonymous>"

    @staticmethod
    def _text(node: Any) -> str:
        return node.text.decode("utf-8", errors="replace")

    @staticmethod
    def _describe_error(root: Any) -> str:
        """Locate the first ERROR or MISSING node in document order."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                row, column = node.start_point
                what = f"missing {node.type}" if node.is_missing else "syntax error"
                return f"{what} at line {row + 1}, column {column + 1}"
            stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
        return "syntax error"
