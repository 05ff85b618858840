"""
Resolve parsed file summaries into the ingestion maps of a ProjectDatabase.

Names are resolved textually (imports, package, nesting, java.lang), and call
sites are matched by owner, name and arity, which stands in for the binding
information a full compiler front-end would provide.
"""

import logging
from collections import defaultdict, deque
from typing import Dict, List, Optional

from .models import MethodInfo, MethodSignature
from .platform import (external_signature, known_platform_fqns, known_platform_names,
                       package_of, platform_classes)
from .project_database import ProjectDatabase

logger = logging.getLogger(__name__)

_PRIMITIVES = {"byte", "short", "int", "long", "float", "double", "boolean", "char", "void", "var"}


class FileContext:
    """Name-resolution scope of one compilation unit"""

    def __init__(self, package: Optional[str], imports: List[str]):
        self.package = package
        self.single_imports = {}
        self.wildcard_imports = []
        for imp in imports:
            if imp.endswith(".*"):
                self.wildcard_imports.append(imp[:-2])
            else:
                self.single_imports[imp.rsplit(".", 1)[-1]] = imp


class BindingResolver:
    def __init__(self):
        self.files = []                  # raw file summaries from parser
        self.classes_by_fqn = {}         # fqn -> type record
        self.contexts = {}               # fqn -> FileContext
        self.parents = {}                # class fqn -> superclass fqn
        self.interfaces = defaultdict(list)  # type fqn -> [interface fqn]
        self.fields = defaultdict(dict)  # owner fqn -> field name -> type fqn
        self.methods_by_owner = defaultdict(list)  # owner fqn -> [(record, signature)]
        self.signatures = {}             # "owner#name(params)" -> MethodSignature
        self.infos: Dict[MethodSignature, MethodInfo] = {}
        self.external_methods: Dict[MethodSignature, dict] = {}
        self.unresolved_calls = 0

        self._platform_names = known_platform_names()
        self._platform_fqns = known_platform_fqns()

    def resolve(self, files: list) -> "BindingResolver":
        self.files = files
        self.stage1_build_symbols()
        self.stage2_inheritance()
        self.stage3_method_signatures()
        self.stage4_calls_and_throws()
        return self

    # ---- stage 1: symbol tables ----
    def stage1_build_symbols(self):
        for f in self.files:
            sym = f["symbols"]
            ctx = FileContext(sym["package"], sym.get("imports", []))
            for t in sym["types"]:
                self.classes_by_fqn[t["fqn"]] = dict(t, package=sym["package"])
                self.contexts[t["fqn"]] = ctx

    # ---- stage 2: CHA edges ----
    def stage2_inheritance(self):
        for fqn, info in self.classes_by_fqn.items():
            for base_simple in info["extends"]:
                base = self.resolve_type(base_simple, fqn)
                if base and base != fqn:
                    self.parents[fqn] = base
            for iface_simple in info["implements"]:
                iface = self.resolve_type(iface_simple, fqn)
                if iface and iface != fqn:
                    self.interfaces[fqn].append(iface)
        for f in self.files:
            for fld in f["symbols"].get("fields", []):
                ftype = self.resolve_type(fld["type"].replace("[]", ""), fld["owner_fqn"])
                if ftype:
                    self.fields[fld["owner_fqn"]][fld["name"]] = ftype

    # ---- stage 3: method signatures ----
    def stage3_method_signatures(self):
        for f in self.files:
            sym = f["symbols"]
            for m in sym["methods"]:
                owner = m["owner_fqn"]
                throws = tuple(self.resolve_exception(t, owner) for t in m["throws"])
                signature = MethodSignature(owner, m["name"], tuple(m["params"]),
                                            sym["package"], throws)
                self.signatures[m["sig"]] = signature
                self.methods_by_owner[owner].append((m, signature))
                self.infos[signature] = MethodInfo(signature)

    # ---- stage 4: call sites, handlers and throw statements ----
    def stage4_calls_and_throws(self):
        for f in self.files:
            per_owner = defaultdict(list)
            for s in f["symbols"]["stmts"]:
                per_owner[s["owner_method"]].append(s)
            for owner_sig, stmts in per_owner.items():
                signature = self.signatures[owner_sig]
                info = self.infos[signature]
                owner_fqn = signature.qualified_class_name
                locals_map = {"this": owner_fqn}
                base = self.parents.get(owner_fqn)
                if base:
                    locals_map["super"] = base
                # first pass: locals, parameters and catch variables
                for s in sorted(stmts, key=lambda x: x["range"][0]):
                    if s["kind"] == "local":
                        fqn = self.resolve_type(s["parts"]["type"], owner_fqn)
                        if fqn:
                            locals_map[s["parts"]["name"]] = fqn
                # second pass: calls and throws
                for s in sorted(stmts, key=lambda x: x["range"][0]):
                    kind, parts = s["kind"], s["parts"]
                    if kind == "throw":
                        thrown = self._thrown_type(parts, locals_map, owner_fqn)
                        if thrown:
                            info.throws_in_body.add(thrown)
                        else:
                            logger.debug("Unresolved throw in %s at line %s", signature, s.get("line"))
                        continue
                    if kind == "local":
                        continue
                    target = self._call_target(kind, parts, locals_map, owner_fqn)
                    if target is None:
                        self.unresolved_calls += 1
                        logger.debug("Unresolved call in %s at line %s", signature, s.get("line"))
                        continue
                    handlers = [self.resolve_exception(h, owner_fqn) for h in parts["handlers"]]
                    info.add_calling(target, handlers)

    def _thrown_type(self, parts, locals_map, owner_fqn) -> Optional[str]:
        if parts["type"]:
            return self.resolve_exception(parts["type"], owner_fqn)
        if parts["var"] and parts["var"] in locals_map:
            return locals_map[parts["var"]]
        return None

    def _call_target(self, kind, parts, locals_map, owner_fqn) -> Optional[MethodSignature]:
        arity = parts["arity"]
        if kind == "new":
            cls = self.resolve_type(parts["type"], owner_fqn)
            return self.lookup_constructor(cls, arity) if cls else None
        if kind == "ctor_call":
            cls = self.parents.get(owner_fqn) if parts["target"] == "super" else owner_fqn
            return self.lookup_constructor(cls, arity) if cls else None

        recv = parts["recv"]
        fields = self.fields[owner_fqn]
        head = recv.split(".", 1)[0] if recv else None
        if recv in (None, "", "this"):
            recv_fqn = owner_fqn
        elif recv == "super":
            recv_fqn = self.parents.get(owner_fqn)
        elif recv in locals_map:
            recv_fqn = locals_map[recv]
        elif recv in fields:
            recv_fqn = fields[recv]
        elif recv.startswith("this.") and recv[5:] in fields:
            recv_fqn = fields[recv[5:]]
        elif "(" in recv or head in locals_map or head in fields:
            recv_fqn = None  # chained call or field of another object
        elif "." not in recv and not recv[:1].isupper():
            recv_fqn = None  # unknown variable
        else:
            recv_fqn = self.resolve_type(recv, owner_fqn)  # maybe static
        if not recv_fqn:
            return None
        return self.lookup_method(recv_fqn, parts["name"], arity)

    # ---- name resolution ----
    def resolve_type(self, simple: str, owner_fqn: Optional[str] = None) -> Optional[str]:
        if not simple:
            return None
        simple = simple.replace("[]", "").replace("...", "")
        if simple in _PRIMITIVES:
            return None
        if simple in self.classes_by_fqn or simple in self._platform_fqns:
            return simple
        ctx = self.contexts.get(owner_fqn) if owner_fqn else None
        pkg = ctx.package if ctx else None

        if "." in simple:
            head, rest = simple.split(".", 1)
            if head[:1].islower():
                return simple  # package qualified
            outer = self.resolve_type(head, owner_fqn)
            if outer and f"{outer}.{rest}" in self.classes_by_fqn:
                return f"{outer}.{rest}"
            return None  # static field of a class, e.g. System.out
        # nested in the current type or one of its outers
        scope = owner_fqn
        while scope and scope in self.classes_by_fqn:
            if f"{scope}.{simple}" in self.classes_by_fqn:
                return f"{scope}.{simple}"
            scope = self.classes_by_fqn[scope].get("outer")
        if ctx and simple in ctx.single_imports:
            return ctx.single_imports[simple]
        cand = f"{pkg}.{simple}" if pkg else simple
        if cand in self.classes_by_fqn:
            return cand
        # fallback: suffix match
        for fqn in sorted(self.classes_by_fqn):
            if fqn.endswith("." + simple):
                return fqn
        platform = self._platform_names.get(simple)
        if platform and package_of(platform) == "java.lang":
            return platform
        for wildcard in (ctx.wildcard_imports if ctx else []):
            if f"{wildcard}.{simple}" in self._platform_fqns:
                return f"{wildcard}.{simple}"
        return None

    def resolve_exception(self, simple: str, owner_fqn: Optional[str]) -> str:
        # unresolved names stay as written and count as unknown classes
        return self.resolve_type(simple, owner_fqn) or simple

    # ---- method lookup ----
    def supertypes_bfs(self, fqn: str):
        seen = {fqn}
        queue = deque([fqn])
        while queue:
            current = queue.popleft()
            yield current
            nxt = [self.parents[current]] if current in self.parents else []
            nxt += self.interfaces.get(current, [])
            for n in nxt:
                if n not in seen:
                    seen.add(n)
                    queue.append(n)

    def lookup_method(self, owner_fqn: str, name: str, arity: int) -> Optional[MethodSignature]:
        # project declarations anywhere in the closure win over library types
        first_external = None
        for cls in self.supertypes_bfs(owner_fqn):
            if cls not in self.classes_by_fqn:
                if first_external is None:
                    first_external = cls
                continue
            for m, signature in self.methods_by_owner.get(cls, []):
                if m["name"] == name and len(m["params"]) == arity:
                    return signature
        if first_external is not None:
            return self._external(first_external, name, arity)
        return None

    def lookup_constructor(self, cls: str, arity: int) -> Optional[MethodSignature]:
        if cls not in self.classes_by_fqn:
            return self._external(cls, "<init>", arity)
        for m, signature in self.methods_by_owner.get(cls, []):
            if m["is_constructor"] and len(m["params"]) == arity:
                return signature
        return None  # implicit default constructor

    def _external(self, cls: str, name: str, arity: int) -> MethodSignature:
        signature = external_signature(cls, name, arity)
        self.external_methods.setdefault(signature, {"external": True, "owner_fqn": cls})
        return signature

    # ---- output ----
    def class_binding(self, fqn: str) -> dict:
        info = self.classes_by_fqn[fqn]
        return {
            "fqn": fqn,
            "super_class": self.parents.get(fqn),
            "interfaces": list(self.interfaces.get(fqn, [])),
            "is_interface": info.get("is_interface", False),
            "methods": [sig for _, sig in self.methods_by_owner.get(fqn, [])],
            "line_range": info.get("line_range"),
        }

    def populate(self, db: ProjectDatabase) -> ProjectDatabase:
        for info in platform_classes():
            db.add_class_binding(info.qualified_name, info)
        for fqn in sorted(self.classes_by_fqn):
            db.add_class_binding(fqn, self.class_binding(fqn))
        for signature, info in self.infos.items():
            db.add_method(info)
        for owner, methods in self.methods_by_owner.items():
            for record, signature in methods:
                db.add_method_binding(signature, record)
        for signature, binding in self.external_methods.items():
            db.add_method_binding(signature, binding)
        logger.info("Resolved %d classes, %d methods, %d external methods (%d calls unresolved)",
                    len(self.classes_by_fqn), len(self.infos), len(self.external_methods),
                    self.unresolved_calls)
        return db
