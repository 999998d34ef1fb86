from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Scalar:
    value: str

    def to_list(self) -> List[str]:
        return [self.value]


@dataclass(frozen=True)
class ListValue:
    values: Tuple[str, ...]

    def to_list(self) -> List[str]:
        return list(self.values)


FilterValue = Union[Scalar, ListValue]

FILTER_DIMENSIONS = ("daw", "genre", "gender", "plugin")

FILTER_DEFAULTS = {"daw": "Any", "genre": "Any", "gender": "All", "plugin": "Any"}


def parse_filter_value(raw: Any, default: str) -> FilterValue:
    if isinstance(raw, (list, tuple)):
        values = tuple(str(item) for item in raw if item not in (None, ""))
        return ListValue(values) if values else Scalar(default)
    if raw in (None, ""):
        return Scalar(default)
    return Scalar(str(raw))


def to_list(value: FilterValue) -> List[str]:
    return value.to_list()


def dump_filter_value(value: FilterValue) -> Union[str, List[str]]:
    if isinstance(value, ListValue):
        return value.to_list()
    return value.value


@dataclass(frozen=True)
class PresetFilters:
    daw: FilterValue
    genre: FilterValue
    gender: FilterValue
    plugin: FilterValue

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "PresetFilters":
        raw = raw or {}
        return cls(
            **{
                dimension: parse_filter_value(raw.get(dimension), FILTER_DEFAULTS[dimension])
                for dimension in FILTER_DIMENSIONS
            }
        )

    def get(self, dimension: str) -> FilterValue:
        return getattr(self, dimension)

    def dict(self) -> Dict[str, Union[str, List[str]]]:
        return {
            dimension: dump_filter_value(self.get(dimension))
            for dimension in FILTER_DIMENSIONS
        }
