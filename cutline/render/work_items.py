"""Work items: source media plus per-item edit properties.

Registry order is playback order. The index of an item names its fragment
(master<index><format>), so the registry is frozen while a render is in
flight and every mutation is rejected until it is thawed.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Iterator, Mapping, Optional, Union

from cutline.exceptions import RenderInProgressError

FilterOptions = Union[None, str, Mapping[str, Any]]


@dataclass(frozen=True)
class FilterSpec:
    """One video filter, e.g. FilterSpec("scale", {"w": 640, "h": 360})."""

    filter: str
    options: FilterOptions = None

    def to_expression(self) -> str:
        """Render as an ffmpeg filter expression ("name=k=v:k=v")."""
        if self.options is None or self.options == {}:
            return self.filter
        if isinstance(self.options, str):
            return f"{self.filter}={self.options}"
        serialized = ":".join(f"{key}={value}" for key, value in self.options.items())
        return f"{self.filter}={serialized}"

    @classmethod
    def parse(cls, value: Union[str, "FilterSpec", Mapping[str, Any]]) -> Union[str, "FilterSpec"]:
        """Accept either a verbatim filter string or a {filter, options} pair."""
        if isinstance(value, (str, FilterSpec)):
            return value
        return cls(filter=value["filter"], options=value.get("options"))


def filter_chain(filters: Optional[list[Union[str, FilterSpec]]]) -> list[str]:
    """Serialize filters to expressions, keeping plain strings verbatim."""
    if not filters:
        return []
    return [f if isinstance(f, str) else f.to_expression() for f in filters]


@dataclass(frozen=True)
class AdvancedOptions:
    """Multi-input and complex-filter directives."""

    inputs: tuple[str, ...] = ()
    complex: bool = False


@dataclass(frozen=True)
class WorkItemProperties:
    """Per-item edit properties."""

    duration: Optional[float] = None
    seek: Optional[float] = None
    filters: tuple[Union[str, FilterSpec], ...] = ()
    advanced: Optional[AdvancedOptions] = None
    complex_filter: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WorkItemProperties":
        if not data:
            return cls()
        advanced_data = data.get("advanced")
        advanced = None
        if advanced_data is not None:
            advanced = AdvancedOptions(
                inputs=tuple(advanced_data.get("inputs") or ()),
                complex=bool(advanced_data.get("complex", False)),
            )
        return cls(
            duration=data.get("duration"),
            seek=data.get("seek"),
            filters=tuple(FilterSpec.parse(f) for f in data.get("filters") or ()),
            advanced=advanced,
            complex_filter=data.get("complex_filter", data.get("complexFilter")),
        )

    @property
    def is_complex(self) -> bool:
        return self.advanced is not None and self.advanced.complex


@dataclass(frozen=True)
class WorkItem:
    """One source media reference and its edit properties."""

    file: str
    properties: WorkItemProperties = field(default_factory=WorkItemProperties)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkItem":
        return cls(
            file=str(data["file"]),
            properties=WorkItemProperties.from_dict(data.get("properties")),
        )


def fragment_name(index: int, format: str) -> str:
    """Name of the intermediate fragment rendered for work item `index`."""
    return f"master{index}{format}"


class WorkItemRegistry:
    """Ordered collection of work items."""

    def __init__(self, items: Optional[list[WorkItem]] = None):
        self._items: list[WorkItem] = list(items or [])
        self._frozen = False

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[WorkItem]:
        return iter(self._items)

    def __getitem__(self, index: int) -> WorkItem:
        return self._items[index]

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def thaw(self) -> None:
        self._frozen = False

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RenderInProgressError("Work items cannot be changed while a render is in progress")

    def add(self, file: str, properties: Optional[WorkItemProperties] = None) -> WorkItem:
        """Append a work item and return it."""
        self._check_mutable()
        item = WorkItem(file=file, properties=properties or WorkItemProperties())
        self._items.append(item)
        return item

    def add_filter(self, index: int, filter: str, options: FilterOptions = None) -> WorkItem:
        """Append a video filter to the item at `index`."""
        self._check_mutable()
        item = self._items[index]
        properties = replace(
            item.properties,
            filters=(*item.properties.filters, FilterSpec(filter=filter, options=options)),
        )
        self._items[index] = replace(item, properties=properties)
        return self._items[index]

    def replace(self, items: list[WorkItem]) -> None:
        self._check_mutable()
        self._items = list(items)

    def clear(self) -> None:
        self._check_mutable()
        self._items.clear()

    def snapshot(self) -> tuple[WorkItem, ...]:
        """Immutable view of the current items, in order."""
        return tuple(self._items)
