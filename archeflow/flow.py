"""Flow state machine.

A flow walks one descriptor tree from ``Initial`` to ``Done`` (or ``Error``)::

    Initial -> Waiting* -> Ready -> Done
        \\________\\________\\______-> Error

States are frozen values. ``transition(state, context)`` never mutates the
state it is given: it forks the interpreter, applies the batch and returns
the next state. ``Flow`` keeps the current state for callers that prefer an
object to thread through a prompt loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, List, Mapping, Optional, Union

from loguru import logger
from opentelemetry import trace

from .ast import ASTNode, ContextNode, InputNode
from .config import EngineSettings
from .errors import FlowDataError, IllegalStateError, UnhandledVariantError
from .interpreter import Interpreter
from .output import assemble
from .result import FlowResult
from .semantic import DescriptorAnalyzer
from .types import FlowStateKind

_tracer = trace.get_tracer(__name__)

ContextInput = Union[ContextNode, Mapping[str, Any], None]


# ─── States ─────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class FlowState:
    kind: ClassVar[FlowStateKind]

    def result(self) -> Optional[FlowResult]:
        return None


@dataclass(frozen=True, eq=False)
class InitialState(FlowState):
    kind: ClassVar[FlowStateKind] = FlowStateKind.INITIAL
    tree: ASTNode
    settings: EngineSettings


@dataclass(frozen=True, eq=False)
class WaitingState(FlowState):
    kind: ClassVar[FlowStateKind] = FlowStateKind.WAITING
    interpreter: Interpreter
    pending: InputNode

    @property
    def pending_path(self) -> str:
        return self.interpreter.graph.input_path(self.pending)


@dataclass(frozen=True, eq=False)
class ReadyState(FlowState):
    kind: ClassVar[FlowStateKind] = FlowStateKind.READY
    interpreter: Interpreter


@dataclass(frozen=True, eq=False)
class DoneState(FlowState):
    kind: ClassVar[FlowStateKind] = FlowStateKind.DONE
    flow_result: FlowResult

    def result(self) -> Optional[FlowResult]:
        return self.flow_result


@dataclass(frozen=True, eq=False)
class ErrorState(FlowState):
    kind: ClassVar[FlowStateKind] = FlowStateKind.ERROR
    error: FlowDataError
    failed_in: FlowStateKind

    @property
    def diagnostic(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


# ─── Transition function ────────────────────────────────────────

def transition(state: FlowState, context: Optional[ContextNode] = None) -> FlowState:
    """Compute the state that follows ``state`` once ``context`` is supplied.

    Data errors (bad answers, bad descriptor) produce an ErrorState.
    Protocol errors (terminal state, empty stack, unknown variant) propagate.
    """
    if state.kind.terminal:
        raise IllegalStateError(f"Flow is {state.kind.value}; build cannot be invoked again")
    try:
        match state:
            case InitialState():
                return _start(state, context)
            case WaitingState():
                return _resume(state, context)
            case ReadyState():
                return _finalize(state, context)
            case _:
                raise UnhandledVariantError(f"No transition for {type(state).__name__}")
    except FlowDataError as e:
        return ErrorState(error=e, failed_in=state.kind)


def _start(state: InitialState, context: Optional[ContextNode]) -> FlowState:
    graph = DescriptorAnalyzer(state.tree).analyze()
    interpreter = Interpreter(graph, state.settings)
    interpreter.enter(state.tree)
    if context is None:
        return _advance(interpreter)
    interpreter.visit(context, interpreter.stack.peek())
    pending = interpreter.advance()
    if pending is None:
        return ReadyState(interpreter=interpreter)
    return _settle(interpreter, pending)


def _resume(state: WaitingState, context: Optional[ContextNode]) -> FlowState:
    interpreter = state.interpreter.fork()
    if context is not None:
        interpreter.visit(context, interpreter.stack.peek())
    return _settle(interpreter, state.pending)


def _settle(interpreter: Interpreter, pending: InputNode) -> FlowState:
    """A batch was merged while ``pending`` was due: an unanswered input takes its default."""
    if not interpreter.is_resolved(pending):
        if pending.default is None:
            return WaitingState(interpreter=interpreter, pending=pending)
        interpreter.bind_default(pending)
    return _advance(interpreter)


def _finalize(state: ReadyState, context: Optional[ContextNode]) -> FlowState:
    interpreter = state.interpreter.fork()
    if context is not None:
        interpreter.visit(context, interpreter.stack.peek())
    values = interpreter.values()
    outputs = assemble(interpreter.graph, values)
    return DoneState(flow_result=FlowResult.snapshot(values, outputs))


def _advance(interpreter: Interpreter) -> FlowState:
    pending = interpreter.advance()
    if pending is None:
        return ReadyState(interpreter=interpreter)
    return WaitingState(interpreter=interpreter, pending=pending)


def as_context(context: ContextInput) -> Optional[ContextNode]:
    if context is None or isinstance(context, ContextNode):
        return context
    if isinstance(context, Mapping):
        return ContextNode.from_mapping(context)
    raise TypeError(f"Expected a ContextNode or a mapping, got {type(context).__name__}")


# ─── Flow ───────────────────────────────────────────────────────

class Flow:
    """One scaffolding run over a descriptor tree.

    Callers alternate between asking ``unresolved_input()`` what to prompt for
    and passing the answers to ``build``. Once the flow is ``READY`` a last
    ``build`` produces the result.
    """

    def __init__(self, tree: ASTNode, settings: Optional[EngineSettings] = None):
        self.tree = tree
        self.settings = settings or EngineSettings.from_env()
        self.console: List[str] = []
        self._state: FlowState = InitialState(tree=tree, settings=self.settings)
        self.history: List[FlowStateKind] = [self._state.kind]

    def log(self, msg: str):
        self.console.append(msg)
        logger.info(msg)

    @property
    def state(self) -> FlowState:
        return self._state

    def state_type(self) -> FlowStateKind:
        return self._state.kind

    def result(self) -> Optional[FlowResult]:
        return self._state.result()

    @property
    def error(self) -> Optional[FlowDataError]:
        return self._state.error if isinstance(self._state, ErrorState) else None

    @property
    def interpreter(self) -> Optional[Interpreter]:
        return getattr(self._state, "interpreter", None)

    def unresolved_input(self) -> Optional[InputNode]:
        return self._state.pending if isinstance(self._state, WaitingState) else None

    def build(self, context: ContextInput = None) -> FlowStateKind:
        previous = self._state
        batch = as_context(context)
        with _tracer.start_as_current_span(f"flow.build:{previous.kind.value}") as span:
            self._state = transition(previous, batch)
            span.set_attribute("archeflow.state", self._state.kind.value)

        kind = self._state.kind
        self.history.append(kind)
        match self._state:
            case WaitingState():
                self.log(f"[flow] {previous.kind.value} -> waiting on '{self._state.pending_path}'")
            case ErrorState():
                self.log(f"[flow] {previous.kind.value} -> error: {self._state.diagnostic}")
            case DoneState():
                self.log(f"[flow] done with {len(self._state.flow_result.outputs)} outputs")
            case _:
                self.log(f"[flow] {previous.kind.value} -> {kind.value}")
        return kind

    def run(self, answers: ContextInput = None) -> Optional[FlowResult]:
        """Drive the flow with one batch of answers, accepting defaults for the rest.

        Stops early when a required input without a default is left unanswered;
        in that case the flow stays WAITING and None is returned.
        """
        self.build(answers)
        while self.state_type() is FlowStateKind.WAITING:
            pending = self.unresolved_input()
            self.build()
            if self.unresolved_input() is pending:
                self.log(f"[flow] '{self._state.pending_path}' needs an answer")
                return None
        if self.state_type() is FlowStateKind.READY:
            self.build()
        return self.result()
