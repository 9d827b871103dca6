from typing import Any, Dict, Mapping, Tuple

from pydantic import BaseModel, Field

from .types import ContextEntry, OutputDirective


# ─── FlowResult: Immutable outcome of a finished flow ───────────
class FlowResult(BaseModel, frozen=True):
    """Context snapshot plus ordered output directives, taken once at finalize.

    Entries are sorted by path so two flows that end with the same context
    produce equal results however many rounds they took.
    """
    entries: Tuple[ContextEntry, ...] = Field(default_factory=tuple)
    outputs: Tuple[OutputDirective, ...] = Field(default_factory=tuple)

    @classmethod
    def snapshot(cls, context: Mapping[str, Any], outputs: Tuple[OutputDirective, ...]) -> "FlowResult":
        entries = tuple(ContextEntry(path=path, value=context[path]) for path in sorted(context))
        return cls(entries=entries, outputs=tuple(outputs))

    @property
    def context(self) -> Dict[str, Any]:
        """A fresh ``{path: value}`` copy; mutating it does not touch the result."""
        return {entry.path: entry.value for entry in self.entries}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowResult":
        return cls.model_validate(data)
