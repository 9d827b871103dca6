"""Archetype interpreter: turns a descriptor tree plus answers into a generation plan."""

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
)
from .config import EngineSettings
from .errors import (
    ArchetypeError,
    ContextOverflowError,
    DescriptorError,
    DuplicateBindingError,
    EmptyStackError,
    FlowDataError,
    FlowProtocolError,
    IllegalStateError,
    TypeMismatchError,
    UnhandledVariantError,
)
from .flow import Flow, transition
from .result import FlowResult
from .types import FlowStateKind, InputKind, OutputDirective, OutputKind

# Silent unless the host opts in with logger.enable("archeflow")
logger.disable("archeflow")

__all__ = [
    "ASTNode",
    "ArchetypeError",
    "ConditionalNode",
    "ContextNode",
    "ContextOverflowError",
    "ContextValue",
    "DescriptorError",
    "DuplicateBindingError",
    "EmptyStackError",
    "EngineSettings",
    "Flow",
    "FlowDataError",
    "FlowProtocolError",
    "FlowResult",
    "FlowStateKind",
    "GroupNode",
    "IllegalStateError",
    "InputBoolean",
    "InputEnum",
    "InputKind",
    "InputList",
    "InputNode",
    "InputOption",
    "InputText",
    "ModelValue",
    "OutputDirective",
    "OutputKind",
    "OutputNode",
    "StepNode",
    "TypeMismatchError",
    "UnhandledVariantError",
    "transition",
]
