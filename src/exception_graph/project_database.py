"""
Exception propagation over the dynamic call graph of a parsed project.

The front-end fills the three ingestion maps, then `build()` runs the
pipeline stages in order and seals the database:

1. methods known only by binding get a bare MethodInfo
2. inheritance graph from the class bindings
3. static call edges from each method's callings
4. devirtualized edges, one per possible runtime callee
5. reverse index callee -> caller -> edge

After that, `chains_from_source` walks from a throwing method up through its
callers and marks, per exception, which callers catch it.
"""

import logging
import warnings
from collections import deque
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .config import AnalyzerConfig
from .inheritance import InheritanceGraph
from .models import (CallChain, CallEdge, CallEdgeDyn, ChainEntry, ClassInfo,
                     MethodInfo, MethodSignature)

logger = logging.getLogger(__name__)

_sig_key = MethodSignature.sort_key


class DatabaseStateError(RuntimeError):
    """The database was used out of order (query before build, mutation after)"""


class ProjectDatabase:
    def __init__(self, config: Optional[AnalyzerConfig] = None,
                 class_adapter: Callable[[object], ClassInfo] = ClassInfo.from_binding):
        self.config = config or AnalyzerConfig()
        self.class_adapter = class_adapter

        self.method_to_info: Dict[MethodSignature, MethodInfo] = {}
        # only used to discover methods that have no parsed body
        self.method_to_binding: Dict[MethodSignature, object] = {}
        # only used to build the inheritance graph
        self.class_to_binding: Dict[str, object] = {}

        self.inherit_graph: Optional[InheritanceGraph] = None
        self.original_call_edges: Set[CallEdge] = set()
        self.dyn_call_edges: Set[CallEdgeDyn] = set()
        # Dict[callee, Dict[caller, edge]]
        self.dyn_call_graph: Dict[MethodSignature, Dict[MethodSignature, CallEdgeDyn]] = {}
        self._sealed = False

    # ---- ingestion ----
    def _check_building(self):
        if self._sealed:
            raise DatabaseStateError("database is sealed; it cannot change after build()")

    def add_method(self, info: MethodInfo):
        self._check_building()
        self.method_to_info[info.signature] = info

    def add_method_binding(self, signature: MethodSignature, binding=None):
        self._check_building()
        self.method_to_binding[signature] = binding

    def add_class_binding(self, name: str, binding):
        self._check_building()
        self.class_to_binding[name] = binding

    @property
    def sealed(self) -> bool:
        return self._sealed

    def build(self):
        """Run every pipeline stage, then seal. Call exactly once."""
        self._check_building()
        self.add_more_method_info_from_bindings()
        self.build_inheritance_graph()
        self.build_original_call_edges()
        self.build_dyn_call_edges()
        self.build_dyn_call_graph()

        self.method_to_info = MappingProxyType(self.method_to_info)
        self.method_to_binding = MappingProxyType(self.method_to_binding)
        self.class_to_binding = MappingProxyType(self.class_to_binding)
        self.original_call_edges = frozenset(self.original_call_edges)
        self.dyn_call_edges = frozenset(self.dyn_call_edges)
        self._sealed = True
        logger.info("Built database: %d methods, %d classes, %d call edges, %d dispatch edges",
                    len(self.method_to_info), len(self.class_to_binding),
                    len(self.original_call_edges), len(self.dyn_call_edges))

    # ---- stage 1: methods known only by binding ----
    def add_more_method_info_from_bindings(self):
        """
        Called methods whose declarations are not in the parsed sources still
        have bindings, so they become nodes with an empty body.
        """
        added = 0
        for signature in self.method_to_binding:
            if signature not in self.method_to_info:
                self.method_to_info[signature] = MethodInfo(signature)
                added += 1
        logger.debug("stage1: %d methods synthesized from bindings", added)

    # ---- stage 2: inheritance ----
    def build_inheritance_graph(self):
        infos = [self.class_adapter(b) for b in self.class_to_binding.values()]
        self.inherit_graph = InheritanceGraph(infos)
        logger.debug("stage2: inheritance graph over %d classes", len(infos))

    # ---- stage 3: static call edges ----
    def build_original_call_edges(self):
        for method, info in self.method_to_info.items():
            for calling in info.callings:
                self.original_call_edges.add(CallEdge(caller=method, callee=calling))
        logger.debug("stage3: %d static call edges", len(self.original_call_edges))

    # ---- stage 4: devirtualization ----
    def build_dyn_call_edges(self):
        for e in sorted(self.original_call_edges,
                        key=lambda e: (_sig_key(e.caller), _sig_key(e.callee))):
            candidates = self.inherit_graph.all_overridden_methods(
                e.callee.qualified_class_name, e.callee)
            candidates.add(e.callee)
            for maybe_callee in sorted(candidates, key=_sig_key):
                self.dyn_call_edges.add(CallEdgeDyn(e.caller, maybe_callee, e.callee))
        logger.debug("stage4: %d devirtualized edges", len(self.dyn_call_edges))

    # ---- stage 5: reverse index ----
    def build_dyn_call_graph(self):
        for m in sorted(self.method_to_info, key=_sig_key):
            self.dyn_call_graph.setdefault(m, {})
        ordered = sorted(self.dyn_call_edges,
                         key=lambda e: (_sig_key(e.callee), _sig_key(e.caller),
                                        _sig_key(e.original_callee)))
        for e in ordered:
            # overriding methods may not be in the parsed sources
            self.dyn_call_graph.setdefault(e.callee, {})
            self.dyn_call_graph.setdefault(e.caller, {})
            self.dyn_call_graph[e.callee][e.caller] = e
        logger.debug("stage5: %d nodes in dynamic call graph", len(self.dyn_call_graph))

    # ---- queries ----
    def _check_sealed(self):
        if not self._sealed:
            raise DatabaseStateError("call build() before querying the database")

    def callers_of(self, method: MethodSignature) -> List[MethodSignature]:
        self._check_sealed()
        return sorted(self.dyn_call_graph.get(method, {}), key=_sig_key)

    def is_exception_source(self, method: MethodSignature,
                            platform_prefixes: Optional[Tuple[str, ...]] = None) -> bool:
        """
        1. Has throw statements in its body, or
        2. belongs to the platform library and declares throws
        """
        self._check_sealed()
        info = self.method_to_info.get(method)
        if info is None:
            return False
        if info.throws_in_body:
            return True
        return (self.config.is_platform_package(method.package_name, platform_prefixes)
                and len(method.throws_declaration) > 0)

    def exception_sources(self, platform_prefixes: Optional[Tuple[str, ...]] = None
                          ) -> List[MethodSignature]:
        self._check_sealed()
        return [m for m in sorted(self.method_to_info, key=_sig_key)
                if self.is_exception_source(m, platform_prefixes)]

    def exceptions_of(self, method: MethodSignature) -> List[str]:
        """Exceptions declared in the signature or thrown in the body"""
        self._check_sealed()
        info = self.method_to_info.get(method)
        if info is None:
            return []
        return sorted(set(info.signature.throws_declaration) | info.throws_in_body)

    def _bfs(self, source: MethodSignature) -> List[List[MethodSignature]]:
        chains = []
        parent: Dict[MethodSignature, Optional[MethodSignature]] = {source: None}
        queue = deque([source])
        while queue:
            u = queue.popleft()
            assert u in self.dyn_call_graph, f"{u} has no bucket in the dynamic call graph"
            discovered = False
            for v in self.callers_of(u):
                if v not in parent:
                    parent[v] = u
                    queue.append(v)
                    discovered = True
            if not discovered:  # u is a leaf of the BFS tree
                chain_with_head = []
                x = u
                while x is not None:
                    chain_with_head.append(x)
                    x = parent[x]
                chain_with_head.reverse()
                chains.append(chain_with_head)
        return chains

    def chains_from_source(self, source: MethodSignature) -> List[CallChain]:
        """
        One chain per (BFS-tree leaf, exception). Each method is reached by
        its first-discovered path only, which keeps the output linear in the
        size of the graph.
        """
        self._check_sealed()
        if source not in self.method_to_info:
            return []
        exceptions = self.exceptions_of(source)
        result = []
        for seq in self._bfs(source):
            result.extend(self._make_call_chains(seq, exceptions))
        return result

    def exactly_all_chains_from_source(self, source: MethodSignature) -> List[CallChain]:
        """
        Every simple caller path from source. Exponential in the worst case;
        meant for cross-checking `chains_from_source` on small graphs.
        """
        warnings.warn("exactly_all_chains_from_source enumerates every simple path "
                      "and is only suitable for small graphs",
                      DeprecationWarning, stacklevel=2)
        self._check_sealed()
        if source not in self.method_to_info:
            return []
        chains_with_head: List[List[MethodSignature]] = []
        self._dfs(source, [], set(), chains_with_head)
        exceptions = self.exceptions_of(source)
        result = []
        for seq in chains_with_head:
            result.extend(self._make_call_chains(seq, exceptions))
        return result

    def _dfs(self, u: MethodSignature, current: List[MethodSignature],
             in_current: Set[MethodSignature], chains_with_head: List[List[MethodSignature]]):
        assert u in self.dyn_call_graph
        current.append(u)
        in_current.add(u)
        extended = False
        for v in self.callers_of(u):
            if v not in in_current:
                extended = True
                self._dfs(v, current, in_current, chains_with_head)
        if not extended:
            chains_with_head.append(list(current))
        assert current[-1] == u
        current.pop()
        in_current.discard(u)

    def _make_call_chains(self, sequence: List[MethodSignature],
                          exceptions: Iterable[str]) -> List[CallChain]:
        template = self._list_to_call_chain(sequence)
        chains = []
        # the same method sequence with different exceptions is a different chain
        for exception in exceptions:
            chain = template.copy()
            chain.exception = exception
            for i, entry in enumerate(chain.chain):
                callee = chain.chain[i - 1].method if i > 0 else chain.throw_from
                entry.handled = self._resolve_handled(callee, entry.method, exception)
            chains.append(chain)
        return chains

    @staticmethod
    def _list_to_call_chain(chain_with_head: List[MethodSignature]) -> CallChain:
        assert len(chain_with_head) >= 1
        return CallChain(chain_with_head[0],
                         [ChainEntry(m, False) for m in chain_with_head[1:]])

    def _resolve_handled(self, callee: MethodSignature, caller: MethodSignature,
                         exception: str) -> bool:
        edge = self.dyn_call_graph[callee][caller]
        caller_info = self.method_to_info.get(caller)
        if caller_info is None:
            return False
        handlers = caller_info.calling_to_handlers.get(edge.original_callee)
        if not handlers:
            return False
        return any(self.can_handle_exception(exception, h) for h in sorted(handlers))

    def can_handle_exception(self, throw_name: str, catch_name: str) -> bool:
        self._check_sealed()
        # an unknown class on either side falls back to the configured bias
        if throw_name not in self.class_to_binding or catch_name not in self.class_to_binding:
            return self.config.unknown_class_compatible
        return self.inherit_graph.is_compatible(throw_name, catch_name)
