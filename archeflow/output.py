from __future__ import annotations
from typing import Any, List, Mapping, Tuple

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
    InputOption,
    InputText,
    ModelValue,
    OutputNode,
    StepNode,
    active_children,
)
from .errors import UnhandledVariantError
from .graph_engine import DescriptorGraph
from .types import OutputDirective


def convert_output(node: ASTNode) -> OutputDirective:
    """Convert an output node into the directive handed to the renderer."""
    match node:
        case OutputNode():
            model = []
            for child in node.children:
                match child:
                    case ModelValue():
                        model.append((child.key, child.value))
                    case _:
                        raise UnhandledVariantError(
                            f"Output conversion has no case for {type(child).__name__}")
            return OutputDirective(
                kind=node.kind,
                source=node.source,
                target=node.target,
                directory=node.current_directory,
                engine=node.engine,
                includes=node.includes,
                excludes=node.excludes,
                model=model,
            )
        case _:
            raise UnhandledVariantError(f"Output conversion has no case for {type(node).__name__}")


def assemble(graph: DescriptorGraph, context: Mapping[str, Any]) -> Tuple[OutputDirective, ...]:
    """Collect the output directives of the active tree in document order.

    ``context`` maps input paths to their final values; it decides which
    branches are active. The result depends only on the tree and the context.
    """
    outputs: List[OutputDirective] = []
    _traverse(graph.root, graph, context, outputs)
    logger.debug(f"[assemble] {len(outputs)} outputs")
    return tuple(outputs)


def _traverse(node: ASTNode, graph: DescriptorGraph, context: Mapping[str, Any],
              outputs: List[OutputDirective]) -> None:
    match node:
        case OutputNode():
            outputs.append(convert_output(node))
            return
        case InputText() | InputBoolean() | InputEnum() | InputList():
            path = graph.input_path(node)
            if path not in context:
                return
            children = active_children(node, context[path])
        case ConditionalNode():
            if node.path not in context or context[node.path] != node.equals:
                return
            children = node.children
        case GroupNode() | StepNode() | InputOption():
            children = node.children
        case ContextNode() | ContextValue() | ModelValue():
            return
        case _:
            raise UnhandledVariantError(f"Result assembly has no case for {type(node).__name__}")

    for child in children:
        _traverse(child, graph, context, outputs)
