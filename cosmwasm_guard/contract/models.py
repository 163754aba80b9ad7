"""
Contract declaration models

Entry points, message enums, storage items and functions extracted from one
or more source files. All models round-trip through plain dicts for the
incremental cache; executable bodies never do.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cosmwasm_guard.parsing import SyntaxNode, SyntaxTree
from cosmwasm_guard.span import SourceSpan


class EntryPointKind(str, Enum):
    """Externally callable contract roles"""

    INSTANTIATE = "Instantiate"
    EXECUTE = "Execute"
    QUERY = "Query"
    MIGRATE = "Migrate"
    SUDO = "Sudo"
    REPLY = "Reply"
    UNKNOWN = "Unknown"


class MessageKind(str, Enum):
    """Message enum roles"""

    INSTANTIATE = "Instantiate"
    EXECUTE = "Execute"
    QUERY = "Query"
    MIGRATE = "Migrate"
    UNKNOWN = "Unknown"


class StorageKind(str, Enum):
    """cw-storage-plus container shapes"""

    ITEM = "Item"
    MAP = "Map"
    INDEXED_MAP = "IndexedMap"


@dataclass
class ParamInfo:
    name: str
    type_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type_name": self.type_name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParamInfo":
        return cls(name=data["name"], type_name=data["type_name"])


@dataclass
class EntryPoint:
    """An attribute-marked contract entry point"""

    name: str
    kind: EntryPointKind
    params: list[ParamInfo]
    span: SourceSpan
    has_mutable_state_access: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "params": [p.to_dict() for p in self.params],
            "span": self.span.to_dict(),
            "has_mutable_state_access": self.has_mutable_state_access,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntryPoint":
        return cls(
            name=data["name"],
            kind=EntryPointKind(data["kind"]),
            params=[ParamInfo.from_dict(p) for p in data["params"]],
            span=SourceSpan.from_dict(data["span"]),
            has_mutable_state_access=data["has_mutable_state_access"],
        )


@dataclass
class FieldInfo:
    name: str
    type_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type_name": self.type_name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldInfo":
        return cls(name=data["name"], type_name=data["type_name"])


@dataclass
class MessageVariant:
    name: str
    fields: list[FieldInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "fields": [f.to_dict() for f in self.fields]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageVariant":
        return cls(name=data["name"], fields=[FieldInfo.from_dict(f) for f in data["fields"]])


@dataclass
class MessageEnum:
    """An enum whose name ends in Msg or Message"""

    name: str
    kind: MessageKind
    variants: list[MessageVariant]
    span: SourceSpan

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "variants": [v.to_dict() for v in self.variants],
            "span": self.span.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageEnum":
        return cls(
            name=data["name"],
            kind=MessageKind(data["kind"]),
            variants=[MessageVariant.from_dict(v) for v in data["variants"]],
            span=SourceSpan.from_dict(data["span"]),
        )


@dataclass
class StateItem:
    """A storage constant such as `const CONFIG: Item<Config> = Item::new("config");`"""

    name: str
    storage_kind: StorageKind
    key_type: str | None
    value_type: str
    storage_key: str | None
    span: SourceSpan

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "storage_kind": self.storage_kind.value,
            "key_type": self.key_type,
            "value_type": self.value_type,
            "storage_key": self.storage_key,
            "span": self.span.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StateItem":
        return cls(
            name=data["name"],
            storage_kind=StorageKind(data["storage_kind"]),
            key_type=data.get("key_type"),
            value_type=data["value_type"],
            storage_key=data.get("storage_key"),
            span=SourceSpan.from_dict(data["span"]),
        )


@dataclass
class FunctionInfo:
    """
    A function (free, impl method or nested in a module).

    `ordinal` is the function's position in one file's traversal order and,
    together with the file, keys body re-attachment after a cache hit.
    `body` is the function's block node; it is None for cache-restored
    declarations until re-attached.
    """

    name: str
    params: list[ParamInfo]
    return_type: str | None
    span: SourceSpan
    ordinal: int = 0
    body: SyntaxNode | None = field(default=None, repr=False, compare=False)
    attributes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the body"""
        return {
            "name": self.name,
            "params": [p.to_dict() for p in self.params],
            "return_type": self.return_type,
            "span": self.span.to_dict(),
            "ordinal": self.ordinal,
            "attributes": list(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FunctionInfo":
        return cls(
            name=data["name"],
            params=[ParamInfo.from_dict(p) for p in data["params"]],
            return_type=data.get("return_type"),
            span=SourceSpan.from_dict(data["span"]),
            ordinal=data.get("ordinal", 0),
            attributes=list(data.get("attributes", [])),
        )


@dataclass
class ContractInfo:
    """Declarations merged across every file of one crate"""

    crate_path: str
    source_files: list[str] = field(default_factory=list)
    entry_points: list[EntryPoint] = field(default_factory=list)
    message_enums: list[MessageEnum] = field(default_factory=list)
    state_items: list[StateItem] = field(default_factory=list)
    functions: list[FunctionInfo] = field(default_factory=list)
    raw_syntax_trees: list[tuple[str, SyntaxTree]] = field(default_factory=list, repr=False)

    def merge(self, other: "ContractInfo") -> None:
        """Append another (usually single-file) ContractInfo"""
        self.source_files.extend(other.source_files)
        self.entry_points.extend(other.entry_points)
        self.message_enums.extend(other.message_enums)
        self.state_items.extend(other.state_items)
        self.functions.extend(other.functions)
        self.raw_syntax_trees.extend(other.raw_syntax_trees)

    @property
    def entry_point_names(self) -> list[str]:
        return [ep.name for ep in self.entry_points]

    def get_entry_point(self, kind: EntryPointKind) -> EntryPoint | None:
        for ep in self.entry_points:
            if ep.kind == kind:
                return ep
        return None

    def get_function(self, name: str) -> FunctionInfo | None:
        for func in self.functions:
            if func.name == name:
                return func
        return None

    def get_message_enum(self, kind: MessageKind) -> MessageEnum | None:
        for enum in self.message_enums:
            if enum.kind == kind:
                return enum
        return None
