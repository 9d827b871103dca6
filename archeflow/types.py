import posixpath
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class FlowStateKind(str, Enum):
    INITIAL = "initial"
    WAITING = "waiting"
    READY = "ready"
    DONE = "done"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (FlowStateKind.DONE, FlowStateKind.ERROR)


class InputKind(str, Enum):
    TEXT = "text"
    BOOLEAN = "boolean"
    ENUM = "enum"
    LIST = "list"


class OutputKind(str, Enum):
    """What an output directive asks the renderer to produce."""
    FILE = "file"            # copy one file
    TEMPLATE = "template"    # render one template
    FILES = "files"          # copy a file set
    TEMPLATES = "templates"  # render a template set


# ─── ContextEntry: one resolved binding in a result ─────────────
class ContextEntry(BaseModel, frozen=True):
    path: str = Field(min_length=1, description="Dotted context path")
    value: Any = None


# ─── OutputDirective: the converted form of an OutputNode ───────
class OutputDirective(BaseModel, frozen=True):
    """A unit of generation intent handed to the rendering collaborator.

    Instances are immutable: ``includes``/``excludes`` are tuples and the
    template ``model`` is an ordered tuple of ``(key, value)`` pairs.
    """
    kind: OutputKind = OutputKind.FILE
    source: Optional[str] = None
    target: Optional[str] = None
    directory: str = ""
    engine: Optional[str] = None
    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    model: Tuple[Tuple[str, Any], ...] = ()

    @field_validator("includes", "excludes", mode="before")
    @classmethod
    def coerce_patterns(cls, v):
        """Accept list/set/str and normalize to a tuple."""
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,)
        if isinstance(v, (list, set, frozenset)):
            return tuple(v)
        return v

    @field_validator("model", mode="before")
    @classmethod
    def coerce_model(cls, v):
        """Accept a dict and keep its insertion order as pairs."""
        if v is None:
            return ()
        if isinstance(v, dict):
            return tuple(v.items())
        if isinstance(v, list):
            return tuple(tuple(pair) for pair in v)
        return v

    @property
    def source_path(self) -> Optional[str]:
        """``source`` resolved against the directory of the defining node."""
        if self.source is None:
            return None
        return posixpath.normpath(posixpath.join(self.directory or ".", self.source))

    def template_model(self) -> dict:
        return dict(self.model)
