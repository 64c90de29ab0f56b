# src/wsg_check/core/utils/frozen.py
from types import MappingProxyType
from typing import Annotated, Any, Dict, Mapping

from pydantic import AfterValidator, PlainSerializer


def freeze(value: Any) -> Any:
    """Recursively turns dicts into read-only mappings and lists into tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of `freeze`, used when a model is dumped."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


# Dict fields of frozen models; the validated value is a MappingProxyType
FrozenStrDict = Annotated[Dict[str, str], AfterValidator(freeze), PlainSerializer(thaw)]
FrozenIntDict = Annotated[Dict[str, int], AfterValidator(freeze), PlainSerializer(thaw)]
FrozenAnyDict = Annotated[Dict[str, Any], AfterValidator(freeze), PlainSerializer(thaw)]
