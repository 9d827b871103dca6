from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from loguru import logger

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
    active_children,
)
from .config import EngineSettings
from .errors import (
    ContextOverflowError,
    DuplicateBindingError,
    EmptyStackError,
    TypeMismatchError,
    UnhandledVariantError,
)
from .graph_engine import DescriptorGraph, join_path
from .schemas import coerce_answer


class ExecutionStack:
    """Nodes the interpreter has entered; the top is the current anchor."""

    def __init__(self, nodes: Iterable[ASTNode] = ()):
        self._nodes: List[ASTNode] = list(nodes)

    def push(self, node: ASTNode) -> None:
        self._nodes.append(node)

    def pop(self) -> ASTNode:
        if not self._nodes:
            raise EmptyStackError("pop on an empty execution stack")
        return self._nodes.pop()

    def peek(self) -> ASTNode:
        if not self._nodes:
            raise EmptyStackError("No active node: the interpreter has not entered the descriptor")
        return self._nodes[-1]

    def copy(self) -> "ExecutionStack":
        return ExecutionStack(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ASTNode]:
        return iter(self._nodes)


def merge_context(
    env: Mapping[str, ContextValue],
    context: ContextNode,
    scope: str,
    lookup: Callable[[str], Optional[InputNode]],
    limit: int,
) -> Dict[str, ContextValue]:
    """Return a new path map with the bindings of ``context`` merged in.

    ``env`` is left untouched. Bindings are keyed by ``scope`` joined with the
    binding name; answers for known inputs are coerced to the input kind.
    Re-supplying an identical value is a no-op, a different value raises
    DuplicateBindingError.
    """
    merged = dict(env)
    batch: Dict[str, Any] = {}
    for binding in context.children:
        match binding:
            case ContextValue():
                pass
            case _:
                raise UnhandledVariantError(
                    f"Context batch may only contain values, found {type(binding).__name__}")

        if not binding.name:
            raise TypeMismatchError(f"Context binding at scope '{scope}' has an empty name")
        path = join_path(scope, binding.name)
        target = lookup(path)
        value = coerce_answer(target, binding.value, path) if target is not None else binding.value

        if path in batch and batch[path] != value:
            raise DuplicateBindingError(
                f"Path '{path}' supplied twice in one batch: {batch[path]!r} and {value!r}")
        batch[path] = value

        existing = merged.get(path)
        if existing is not None:
            if existing.value != value:
                raise DuplicateBindingError(
                    f"Path '{path}' is already bound to {existing.value!r}, cannot rebind to {value!r}")
            continue
        merged[path] = ContextValue(name=path, value=value, current_directory=binding.current_directory)

    if len(merged) > limit:
        raise ContextOverflowError(f"Context size {len(merged)} exceeds limit {limit}")
    return merged


class Interpreter:
    def __init__(self, graph: DescriptorGraph, settings: Optional[EngineSettings] = None):
        self.graph = graph
        self.settings = settings or EngineSettings()
        self.inputs: Dict[str, InputNode] = graph.input_index()
        self.stack = ExecutionStack()
        self._env: Dict[str, ContextValue] = {}

    @property
    def path_to_context_node_map(self) -> Mapping[str, ContextValue]:
        return MappingProxyType(self._env)

    def values(self) -> Dict[str, Any]:
        return {path: node.value for path, node in self._env.items()}

    def fork(self) -> "Interpreter":
        """Copy with its own stack and map; the graph and settings are shared."""
        clone = copy.copy(self)
        clone.stack = self.stack.copy()
        clone._env = dict(self._env)
        return clone

    # ---------- Stack ----------
    def enter(self, node: ASTNode) -> None:
        self.stack.push(node)

    def unwind(self) -> None:
        """Pop back to the outermost entered node."""
        while len(self.stack) > 1:
            self.stack.pop()

    # ---------- Context ----------
    def visit(self, context: ContextNode, anchor: ASTNode) -> None:
        scope = self.graph.scope_path(anchor)
        before = len(self._env)
        self._env = merge_context(
            self._env, context, scope, self.inputs.get, self.settings.max_context_size)
        logger.debug(f"[merge] +{len(self._env) - before} bindings at scope '{scope}'")

    def is_resolved(self, node: InputNode) -> bool:
        return self.graph.input_path(node) in self._env

    def bind(self, node: InputNode, value: Any) -> None:
        self.visit(ContextNode.from_bindings([(node.name, value)], node.current_directory), node)

    def bind_default(self, node: InputNode) -> None:
        self.bind(node, node.default)
        logger.info(f"[input] {self.graph.input_path(node)} = {node.default!r} (default)")

    # ---------- Interpretation ----------
    def advance(self) -> Optional[InputNode]:
        """Move the stack onto the next unresolved input, or return None if there is none."""
        self.unwind()
        chain = self._interpret(self.stack.peek(), [])
        if chain is None:
            return None
        for node in chain[1:]:
            self.stack.push(node)
        return chain[-1]

    def _interpret(self, node: ASTNode, chain: List[ASTNode]) -> Optional[List[ASTNode]]:
        chain = chain + [node]
        match node:
            case ContextNode():
                self.visit(node, node)
                return None
            case InputText() | InputBoolean() | InputEnum() | InputList():
                path = self.graph.input_path(node)
                if path not in self._env:
                    if node.optional and node.default is None:
                        return None
                    if node.optional or (self.settings.accept_defaults and node.default is not None):
                        self.bind_default(node)
                    else:
                        return chain
                return self._interpret_all(active_children(node, self._env[path].value), chain)
            case ConditionalNode():
                bound = self._env.get(node.path)
                if bound is None or bound.value != node.equals:
                    return None
                return self._interpret_all(node.children, chain)
            case GroupNode() | StepNode():
                return self._interpret_all(node.children, chain)
            case OutputNode():
                return None
            case InputOption() | ContextValue() | ModelValue():
                raise UnhandledVariantError(
                    f"{type(node).__name__} reached outside of its owning node")
            case _:
                raise UnhandledVariantError(f"Interpreter has no case for {type(node).__name__}")

    def _interpret_all(self, nodes: List[ASTNode], chain: List[ASTNode]) -> Optional[List[ASTNode]]:
        for child in nodes:
            found = self._interpret(child, chain)
            if found is not None:
                return found
        return None
