from __future__ import annotations
from typing import Dict, Optional

from .ast import (
    ASTNode,
    ConditionalNode,
    ContextNode,
    ContextValue,
    GroupNode,
    InputBoolean,
    InputEnum,
    InputList,
    InputNode,
    InputOption,
    InputText,
    ModelValue,
    OutputNode,
    StepNode,
)
from .errors import DescriptorError, TypeMismatchError
from .graph_engine import DescriptorGraph
from .schemas import coerce_answer
from .types import OutputKind


class DescriptorAnalyzer:
    """Walks the descriptor tree and performs structural checks:
    - the tree is a tree (single ownership, no cycles)
    - input names are valid and unique within their scope
    - option, model and context-value nodes sit under the right parent
    - declared defaults fit their input kind
    - outputs name what they produce
    """

    def __init__(self, root: ASTNode):
        self.root = root
        self.graph: Optional[DescriptorGraph] = None
        self.inputs: Dict[str, InputNode] = {}

    def analyze(self) -> DescriptorGraph:
        self.graph = DescriptorGraph(self.root)
        self.inputs = self.graph.input_index()

        for node in self.graph.nodes():
            parent = self.graph.parent(node)
            match node:
                case InputNode():
                    self._check_input(node)
                case InputOption():
                    if not isinstance(parent, (InputEnum, InputList)):
                        raise DescriptorError(
                            f"Option '{node.value}' must be declared inside an enum or list input")
                case ContextValue():
                    if not isinstance(parent, ContextNode):
                        raise DescriptorError(
                            f"Context value '{node.name}' must be declared inside a context node")
                case ModelValue():
                    if not isinstance(parent, OutputNode):
                        raise DescriptorError(
                            f"Model value '{node.key}' must be declared inside an output")
                case OutputNode():
                    self._check_output(node)
                case ConditionalNode():
                    if not node.path:
                        raise DescriptorError("Conditional node without a path")
                case ContextNode():
                    self._check_context(node)
                case GroupNode() | StepNode():
                    pass
                case _:
                    raise DescriptorError(f"Unknown descriptor node {type(node).__name__}")
        return self.graph

    def _check_input(self, node: InputNode) -> None:
        path = self.graph.input_path(node)
        if not isinstance(node, (InputText, InputBoolean, InputEnum, InputList)):
            raise DescriptorError(f"Input '{path}' has no concrete kind ({type(node).__name__})")
        if not node.name or "." in node.name:
            raise DescriptorError(f"Invalid input name {node.name!r} in scope '{self.graph.scope_path(node)}'")

        if isinstance(node, (InputEnum, InputList)):
            seen = set()
            for child in node.children:
                if not isinstance(child, InputOption):
                    raise DescriptorError(
                        f"Input '{path}' may only contain options, found {type(child).__name__}")
                if child.value in seen:
                    raise DescriptorError(f"Input '{path}' declares option '{child.value}' twice")
                seen.add(child.value)
            if isinstance(node, InputEnum) and not seen:
                raise DescriptorError(f"Enum input '{path}' declares no options")

        if node.default is not None:
            try:
                coerce_answer(node, node.default, path)
            except TypeMismatchError as e:
                raise DescriptorError(f"Invalid default for input '{path}': {e}") from e

    def _check_context(self, node: ContextNode) -> None:
        for child in node.children:
            if not isinstance(child, ContextValue):
                raise DescriptorError(
                    f"Context node may only contain context values, found {type(child).__name__}")

    def _check_output(self, node: OutputNode) -> None:
        for child in node.children:
            if not isinstance(child, ModelValue):
                raise DescriptorError(
                    f"Output may only contain model values, found {type(child).__name__}")
        if node.kind in (OutputKind.FILE, OutputKind.TEMPLATE):
            if not node.source and not node.target:
                raise DescriptorError(f"{node.kind.value} output needs a source or a target")
        elif not node.source:
            raise DescriptorError(f"{node.kind.value} output needs a source directory")
