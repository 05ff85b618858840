"""
Nominal subtype relation over classes and interfaces.

Ancestor and subtype sets are computed once at construction, so after that
every query only reads.
"""

import logging
from collections import defaultdict, deque
from typing import Dict, FrozenSet, Iterable, List, Set

from .models import ClassInfo, MethodSignature

logger = logging.getLogger(__name__)


class InheritanceGraph:
    def __init__(self, classes: Iterable[ClassInfo]):
        self.classes: Dict[str, ClassInfo] = {}
        self.supers: Dict[str, List[str]] = defaultdict(list)  # sub -> [extends] + implements
        self.subs: Dict[str, List[str]] = defaultdict(list)    # sup -> direct subtypes

        for info in classes:
            self.classes[info.qualified_name] = info
            for sup in info.supertypes():
                if sup == info.qualified_name:
                    logger.warning("Ignoring self-inheritance of %s", sup)
                    continue
                self.supers[info.qualified_name].append(sup)
                self.subs[sup].append(info.qualified_name)

        nodes = set(self.supers) | set(self.subs) | set(self.classes)
        self._ancestors = {n: self._closure(n, self.supers) for n in nodes}
        self._descendants = {n: self._closure(n, self.subs) for n in nodes}

        cyclic = sorted(n for n in nodes if n in self._ancestors[n])
        if cyclic:
            logger.warning("Inheritance cycle through %s", ", ".join(cyclic))

    @staticmethod
    def _closure(start: str, adjacency: Dict[str, List[str]]) -> FrozenSet[str]:
        """BFS over adjacency, not including start unless a cycle leads back to it"""
        visited: Set[str] = set()
        queue = deque(adjacency.get(start, ()))
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            queue.extend(n for n in adjacency.get(current, ()) if n not in visited)
        return frozenset(visited)

    def __contains__(self, name: str) -> bool:
        return name in self.classes

    def ancestors(self, name: str) -> FrozenSet[str]:
        return self._ancestors.get(name, frozenset())

    def subtypes(self, name: str) -> FrozenSet[str]:
        return self._descendants.get(name, frozenset())

    def is_compatible(self, sub: str, sup: str) -> bool:
        """True if `sub` is `sup` or transitively extends/implements it"""
        return sub == sup or sup in self.ancestors(sub)

    def all_overridden_methods(self, owner_class: str,
                               signature: MethodSignature) -> Set[MethodSignature]:
        """
        Methods declared by subtypes of owner_class with the same name and
        parameter types as signature, i.e. the runtime dispatch candidates
        of a call whose static target is signature.
        """
        result = set()
        for sub in self.subtypes(owner_class):
            info = self.classes.get(sub)
            if info is None:
                continue
            for declared in info.methods:
                if declared.same_dispatch_key(signature):
                    result.add(declared)
        return result
