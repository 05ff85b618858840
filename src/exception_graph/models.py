"""
Records shared by the front-end and the exception propagation analysis.

Every cross-reference between records goes through a MethodSignature or a
qualified class name, never through object identity.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple


@dataclass(frozen=True)
class MethodSignature:
    """Identity key of a method"""
    qualified_class_name: str
    method_name: str
    parameter_types: Tuple[str, ...] = ()
    package_name: Optional[str] = None
    throws_declaration: Tuple[str, ...] = ()

    def sort_key(self):
        return (self.qualified_class_name, self.method_name, self.parameter_types,
                self.package_name or "", self.throws_declaration)

    def same_dispatch_key(self, other: "MethodSignature") -> bool:
        # return type and throws clause never take part in overriding
        return (self.method_name == other.method_name
                and self.parameter_types == other.parameter_types)

    def to_dict(self) -> dict:
        return {
            "class": self.qualified_class_name,
            "name": self.method_name,
            "params": list(self.parameter_types),
            "package": self.package_name,
            "throws": list(self.throws_declaration),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MethodSignature":
        return cls(data["class"], data["name"], tuple(data.get("params", [])),
                   data.get("package"), tuple(data.get("throws", [])))

    def __str__(self) -> str:
        return f"{self.qualified_class_name}#{self.method_name}({','.join(self.parameter_types)})"


@dataclass
class MethodInfo:
    """Facts collected from one method body"""
    signature: MethodSignature
    callings: Set[MethodSignature] = field(default_factory=set)
    throws_in_body: Set[str] = field(default_factory=set)
    # called signature -> catch types textually around that call site
    calling_to_handlers: Dict[MethodSignature, Set[str]] = field(default_factory=dict)

    def add_calling(self, callee: MethodSignature, handlers=()):
        self.callings.add(callee)
        if handlers:
            self.calling_to_handlers.setdefault(callee, set()).update(handlers)


@dataclass
class ClassInfo:
    """Nominal class or interface record"""
    qualified_name: str
    super_class: Optional[str] = None
    interfaces: Set[str] = field(default_factory=set)
    is_interface: bool = False
    methods: Set[MethodSignature] = field(default_factory=set)

    def supertypes(self) -> List[str]:
        supers = [self.super_class] if self.super_class else []
        return supers + sorted(self.interfaces)

    def to_dict(self) -> dict:
        return {
            "fqn": self.qualified_name,
            "super_class": self.super_class,
            "interfaces": sorted(self.interfaces),
            "is_interface": self.is_interface,
            "methods": [m.to_dict() for m in sorted(self.methods, key=MethodSignature.sort_key)],
        }

    @classmethod
    def from_binding(cls, binding) -> "ClassInfo":
        """
        Default class-binding adapter.

        Accepts a ClassInfo as-is, or a type record as produced by the
        binding resolver (the same shape as `to_dict`).
        """
        if isinstance(binding, ClassInfo):
            return binding
        methods = set()
        for m in binding.get("methods", []):
            methods.add(m if isinstance(m, MethodSignature) else MethodSignature.from_dict(m))
        return cls(
            qualified_name=binding["fqn"],
            super_class=binding.get("super_class"),
            interfaces=set(binding.get("interfaces", [])),
            is_interface=bool(binding.get("is_interface", False)),
            methods=methods,
        )


@dataclass(frozen=True)
class CallEdge:
    caller: MethodSignature
    callee: MethodSignature


@dataclass(frozen=True)
class CallEdgeDyn:
    """A call site resolved to one possible runtime target"""
    caller: MethodSignature
    callee: MethodSignature
    original_callee: MethodSignature  # target as written, used for handler lookup


@dataclass
class ChainEntry:
    method: MethodSignature
    handled: bool = False


@dataclass
class CallChain:
    """Methods upstream of a throw site, tagged with the propagated exception"""
    throw_from: MethodSignature
    chain: List[ChainEntry] = field(default_factory=list)
    exception: Optional[str] = None

    def copy(self) -> "CallChain":
        return CallChain(self.throw_from,
                         [ChainEntry(e.method, e.handled) for e in self.chain],
                         self.exception)

    def methods(self) -> List[MethodSignature]:
        return [self.throw_from] + [e.method for e in self.chain]

    def handled_index(self) -> Optional[int]:
        for i, entry in enumerate(self.chain):
            if entry.handled:
                return i
        return None

    @property
    def escapes(self) -> bool:
        return self.handled_index() is None
