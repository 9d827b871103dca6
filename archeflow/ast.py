# Descriptor AST for archetype interpretation.
#
# A closed set of dataclass variants. Passes dispatch on the concrete type
# with ``match``; nodes carry data only.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple

from .types import InputKind, OutputKind


@dataclass(eq=False, kw_only=True)
class ASTNode:
    current_directory: str = ""
    children: List["ASTNode"] = field(default_factory=list)

    def add(self, *nodes: "ASTNode") -> "ASTNode":
        """Append children in document order and return self for chaining."""
        self.children.extend(nodes)
        return self


# ─── Structural nodes ───────────────────────────────────────────

@dataclass(eq=False, kw_only=True)
class GroupNode(ASTNode):
    pass


@dataclass(eq=False, kw_only=True)
class StepNode(ASTNode):
    label: str = ""
    help: Optional[str] = None


@dataclass(eq=False, kw_only=True)
class ConditionalNode(ASTNode):
    """Children are active only when ``path`` is bound to ``equals``."""
    path: str
    equals: Any = True


# ─── Context ────────────────────────────────────────────────────

@dataclass(eq=False, kw_only=True)
class ContextValue(ASTNode):
    name: str
    value: Any = None


@dataclass(eq=False, kw_only=True)
class ContextNode(ASTNode):
    """A batch of resolved bindings, one ``ContextValue`` child per entry."""

    @classmethod
    def from_bindings(cls, bindings: Iterable[Tuple[str, Any]], current_directory: str = "") -> "ContextNode":
        result = cls(current_directory=current_directory)
        for name, value in bindings:
            result.children.append(ContextValue(name=name, value=value, current_directory=current_directory))
        return result

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], current_directory: str = "") -> "ContextNode":
        return cls.from_bindings(values.items(), current_directory)

    def bindings(self) -> List[Tuple[str, Any]]:
        return [(c.name, c.value) for c in self.children if isinstance(c, ContextValue)]


# ─── Inputs ─────────────────────────────────────────────────────

@dataclass(eq=False, kw_only=True)
class InputNode(ASTNode):
    """Common attributes of every prompt. Not a concrete variant."""
    name: str
    label: str = ""
    default: Any = None
    prompt: Optional[str] = None
    help: Optional[str] = None
    optional: bool = False

    kind: InputKind = field(init=False, default=InputKind.TEXT)


@dataclass(eq=False, kw_only=True)
class InputText(InputNode):
    placeholder: Optional[str] = None

    def __post_init__(self):
        self.kind = InputKind.TEXT


@dataclass(eq=False, kw_only=True)
class InputBoolean(InputNode):
    def __post_init__(self):
        self.kind = InputKind.BOOLEAN


@dataclass(eq=False, kw_only=True)
class InputOption(ASTNode):
    value: str
    label: str = ""
    help: Optional[str] = None


@dataclass(eq=False, kw_only=True)
class InputEnum(InputNode):
    def __post_init__(self):
        self.kind = InputKind.ENUM

    def options(self) -> List[InputOption]:
        return [c for c in self.children if isinstance(c, InputOption)]


@dataclass(eq=False, kw_only=True)
class InputList(InputNode):
    def __post_init__(self):
        self.kind = InputKind.LIST

    def options(self) -> List[InputOption]:
        return [c for c in self.children if isinstance(c, InputOption)]


# ─── Outputs ────────────────────────────────────────────────────

@dataclass(eq=False, kw_only=True)
class ModelValue(ASTNode):
    key: str
    value: Any = None


@dataclass(eq=False, kw_only=True)
class OutputNode(ASTNode):
    kind: OutputKind = OutputKind.FILE
    source: Optional[str] = None
    target: Optional[str] = None
    engine: Optional[str] = None
    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()


# ─── Helpers ────────────────────────────────────────────────────

def walk(node: ASTNode) -> Iterator[ASTNode]:
    """Pre-order traversal, children in stored order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def active_children(node: ASTNode, value: Any) -> List[ASTNode]:
    """Children of an answered input that belong to the selected branch."""
    match node:
        case InputBoolean():
            return list(node.children) if value is True else []
        case InputEnum():
            return [ch for opt in node.options() if opt.value == value for ch in opt.children]
        case InputList():
            selected = set(value or ())
            return [ch for opt in node.options() if opt.value in selected for ch in opt.children]
        case InputText():
            return list(node.children)
        case _:
            return list(node.children)
