"""Pydantic schemas for answer validation.

Every value bound to an input path passes through the schema for that
input's kind. Values that do not fit raise TypeMismatchError.
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from .ast import InputBoolean, InputEnum, InputList, InputNode, InputText
from .errors import TypeMismatchError, UnhandledVariantError
from .types import InputKind

_TRUE = {"true", "yes", "y", "on"}
_FALSE = {"false", "no", "n", "off"}


class TextAnswer(BaseModel):
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> str:
        """Numbers become strings; anything else must already be a string."""
        if isinstance(v, bool) or not isinstance(v, (str, int, float)):
            raise ValueError(f"expected text, got {type(v).__name__}")
        return str(v)


class BooleanAnswer(BaseModel):
    value: bool

    @field_validator("value", mode="before")
    @classmethod
    def coerce_to_bool(cls, v: Any) -> bool:
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            lowered = v.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
        raise ValueError(f"expected a boolean, got {v!r}")


class EnumAnswer(BaseModel):
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def check_choice(cls, v: Any, info: ValidationInfo) -> str:
        choices = (info.context or {}).get("choices", ())
        if not isinstance(v, str) or v not in choices:
            raise ValueError(f"{v!r} is not one of {list(choices)}")
        return v


class ListAnswer(BaseModel):
    value: Tuple[str, ...]

    @field_validator("value", mode="before")
    @classmethod
    def check_choices(cls, v: Any, info: ValidationInfo) -> Tuple[str, ...]:
        """Accept a sequence or a comma-separated string of option values."""
        choices = (info.context or {}).get("choices", ())
        if isinstance(v, str):
            v = [item.strip() for item in v.split(",") if item.strip()]
        if not isinstance(v, (list, tuple)):
            raise ValueError(f"expected a list, got {type(v).__name__}")
        items = []
        for item in v:
            if not isinstance(item, str) or item not in choices:
                raise ValueError(f"{item!r} is not one of {list(choices)}")
            if item not in items:
                items.append(item)
        return tuple(items)


# Schema registry for kind -> schema mapping
KIND_SCHEMAS: Dict[InputKind, type] = {
    InputKind.TEXT: TextAnswer,
    InputKind.BOOLEAN: BooleanAnswer,
    InputKind.ENUM: EnumAnswer,
    InputKind.LIST: ListAnswer,
}


def coerce_answer(node: InputNode, value: Any, path: Optional[str] = None) -> Any:
    """Validate ``value`` against the kind of ``node`` and return the coerced value.

    Args:
        node: The input expecting the answer
        value: The raw answer
        path: Context path used in diagnostics, defaults to the input name

    Returns:
        The normalized value (str, bool or tuple of str)

    Raises:
        TypeMismatchError: If the value does not fit the input kind
    """
    match node:
        case InputText() | InputBoolean():
            context = None
        case InputEnum() | InputList():
            context = {"choices": [opt.value for opt in node.options()]}
        case _:
            raise UnhandledVariantError(f"No answer schema for {type(node).__name__}")

    schema_cls = KIND_SCHEMAS[node.kind]
    try:
        return schema_cls.model_validate({"value": value}, context=context).value
    except ValidationError as e:
        reason = "; ".join(err["msg"] for err in e.errors())
        raise TypeMismatchError(
            f"Input '{path or node.name}' expects {node.kind.value}: {reason}"
        ) from e
