from functools import lru_cache
from pathlib import Path
import re

import tree_sitter_java as tsjava
from tree_sitter import Language, Parser

JAVA_LANGUAGE = Language(tsjava.language())

_TYPE_DECLS = ("class_declaration", "interface_declaration",
               "enum_declaration", "record_declaration")
_TRY_NODES = ("try_statement", "try_with_resources_statement")
_COMMENTS = ("line_comment", "block_comment")
# bodies of anonymous and local classes belong to their own methods
_SKIPPED = ("class_body", "class_declaration", "interface_declaration",
            "enum_declaration", "record_declaration")

_GENERIC_ARGS = re.compile(r"<[^<>]*>")


@lru_cache(maxsize=1)
def get_java_parser() -> Parser:
    return Parser(JAVA_LANGUAGE)


def slice_text(src: bytes, node):
    return src[node.start_byte:node.end_byte].decode("utf-8")


def node_line(node) -> int:
    """1-indexed line of the node start"""
    return node.start_point[0] + 1


def clean_type(text: str) -> str:
    """Drop generic arguments and whitespace: `Map<K, List<V>>` -> `Map`"""
    previous = None
    while previous != text:
        previous, text = text, _GENERIC_ARGS.sub("", text)
    return "".join(text.split())


def _type_list(src_b, node) -> list[str]:
    """Type names under a type_list / throws / catch_type node"""
    names = []
    for child in node.named_children:
        if child.type == "type_list":
            names.extend(_type_list(src_b, child))
        elif child.type not in _COMMENTS:
            names.append(clean_type(slice_text(src_b, child)))
    return names


def _arity(node) -> int:
    args = node.child_by_field_name("arguments")
    if args is None:
        return 0
    return len([c for c in args.named_children if c.type not in _COMMENTS])


def parse_source(src_b: bytes, path: str = "<memory>") -> dict:
    tree = get_java_parser().parse(src_b)
    root = tree.root_node

    pkg = None
    imports = []
    types = []
    methods = []
    fields = []
    stmts = []  # call/new/throw/local

    for ch in root.children:
        if ch.type == "package_declaration":
            for child in ch.named_children:
                if child.type in ("scoped_identifier", "identifier"):
                    pkg = slice_text(src_b, child).strip()
                    break
        elif ch.type == "import_declaration":
            if any(c.type == "static" for c in ch.children):
                continue
            name = None
            wildcard = False
            for child in ch.named_children:
                if child.type in ("scoped_identifier", "identifier"):
                    name = slice_text(src_b, child).strip()
                elif child.type == "asterisk":
                    wildcard = True
            if name:
                imports.append(name + ".*" if wildcard else name)
        elif ch.type in _TYPE_DECLS:
            _collect_type(src_b, ch, pkg, None, types, methods, fields, stmts)

    return {
        "path": str(path),
        "symbols": {
            "package": pkg,
            "imports": imports,
            "types": types,
            "methods": methods,
            "fields": fields,
            "stmts": stmts,
        }
    }


def parse_file(path: str | Path):
    path = Path(path)
    return parse_source(path.read_bytes(), str(path))


def _collect_type(src_b, cls, pkg, outer_fqn, types, methods, fields, stmts):
    is_interface = cls.type == "interface_declaration"
    cls_name = slice_text(src_b, cls.child_by_field_name("name"))
    if outer_fqn:
        fqn = f"{outer_fqn}.{cls_name}"
    else:
        fqn = f"{pkg}.{cls_name}" if pkg else cls_name

    extends = []
    sc = cls.child_by_field_name("superclass")
    if sc:
        extends.extend(_type_list(src_b, sc))
    implements = []
    impls = cls.child_by_field_name("interfaces")
    if impls:
        implements.extend(_type_list(src_b, impls))
    for child in cls.children:
        # interface extends: these are superinterfaces, not a superclass
        if child.type == "extends_interfaces":
            implements.extend(_type_list(src_b, child))

    types.append({
        "kind": cls.type.replace("_declaration", ""),
        "name": cls_name,
        "fqn": fqn,
        "outer": outer_fqn,
        "extends": extends,
        "implements": implements,
        "is_interface": is_interface,
        "line_range": [node_line(cls), cls.end_point[0] + 1],
    })

    body = cls.child_by_field_name("body")
    if not body:
        return
    members = []
    for mem in body.children:
        if mem.type == "enum_body_declarations":
            members.extend(mem.children)
        else:
            members.append(mem)

    for mem in members:
        if mem.type in _TYPE_DECLS:
            _collect_type(src_b, mem, pkg, fqn, types, methods, fields, stmts)
        elif mem.type in ("method_declaration", "constructor_declaration",
                          "compact_constructor_declaration"):
            is_ctor = mem.type != "method_declaration"
            mname = "<init>" if is_ctor else slice_text(src_b, mem.child_by_field_name("name"))
            ps, names = _collect_params(src_b, mem.child_by_field_name("parameters"))
            throws = []
            for child in mem.children:
                if child.type == "throws":
                    throws.extend(_type_list(src_b, child))
            sig = f"{fqn}#{mname}({','.join(ps)})"
            methods.append({
                "owner_fqn": fqn,
                "name": mname,
                "sig": sig,
                "params": ps,
                "throws": throws,
                "is_constructor": is_ctor,
                "line_range": [node_line(mem), mem.end_point[0] + 1],
            })
            for ptype, pname in zip(ps, names):
                stmts.append({
                    "kind": "local",
                    "owner_method": sig,
                    "parts": {"name": pname, "type": ptype.replace("[]", "")},
                    "range": [mem.start_byte, mem.start_byte],
                })
            block = mem.child_by_field_name("body")
            if block:
                _collect_stmts(src_b, block, owner=sig, stmts=stmts)
        elif mem.type in ("field_declaration", "constant_declaration"):
            ftype = mem.child_by_field_name("type")
            for d in [c for c in mem.children if c.type == "variable_declarator"]:
                fname_node = d.child_by_field_name("name")
                if not fname_node or not ftype:
                    continue
                fields.append({
                    "owner_fqn": fqn,
                    "name": slice_text(src_b, fname_node),
                    "type": clean_type(slice_text(src_b, ftype)),
                })


def _collect_params(src_b, params):
    types, names = [], []
    if params is None:
        return types, names
    for p in params.named_children:
        if p.type == "formal_parameter":
            t = p.child_by_field_name("type")
            n = p.child_by_field_name("name")
            types.append(clean_type(slice_text(src_b, t)))
            names.append(slice_text(src_b, n) if n else "")
        elif p.type == "spread_parameter":
            t = next((c for c in p.named_children
                      if c.type not in ("modifiers", "variable_declarator")), None)
            d = next((c for c in p.named_children if c.type == "variable_declarator"), None)
            n = d.child_by_field_name("name") if d else None
            types.append(clean_type(slice_text(src_b, t)) + "[]" if t else "?[]")
            names.append(slice_text(src_b, n) if n else "")
    return types, names


def _stmt(kind, owner, node, **parts):
    return {"kind": kind, "owner_method": owner, "parts": parts,
            "range": [node.start_byte, node.end_byte], "line": node_line(node)}


def _collect_stmts(src_b, node, owner, stmts):
    # walk the body keeping the catch types of every enclosing try block
    stack = [(node, ())]
    while stack:
        n, handlers = stack.pop()

        if n.type in _TRY_NODES:
            caught = list(handlers)
            for c in n.children:
                if c.type == "catch_clause":
                    for part in c.named_children:
                        if part.type == "catch_formal_parameter":
                            for ct in part.named_children:
                                if ct.type == "catch_type":
                                    caught.extend(_type_list(src_b, ct))
            caught = tuple(caught)
            for c in n.children:
                if c.type in ("catch_clause", "finally_clause"):
                    stack.append((c, handlers))
                else:
                    stack.append((c, caught))
            continue

        # a lambda body runs after the enclosing try has exited
        inner = () if n.type == "lambda_expression" else handlers
        for c in n.children:
            if c.type not in _SKIPPED:
                stack.append((c, inner))

        if n.type == "local_variable_declaration":
            t = n.child_by_field_name("type")
            for d in [c for c in n.children if c.type == "variable_declarator"]:
                name = slice_text(src_b, d.child_by_field_name("name"))
                vtype = clean_type(slice_text(src_b, t))
                value = d.child_by_field_name("value")
                if vtype == "var" and value is not None and value.type == "object_creation_expression":
                    vtype = clean_type(slice_text(src_b, value.child_by_field_name("type")))
                stmts.append(_stmt("local", owner, n, name=name, type=vtype))
        elif n.type == "enhanced_for_statement":
            t = n.child_by_field_name("type")
            name = n.child_by_field_name("name")
            if t and name:
                stmts.append(_stmt("local", owner, n, name=slice_text(src_b, name),
                                   type=clean_type(slice_text(src_b, t))))
        elif n.type == "catch_formal_parameter":
            name = n.child_by_field_name("name")
            ctypes = []
            for ct in n.named_children:
                if ct.type == "catch_type":
                    ctypes = _type_list(src_b, ct)
            if name and ctypes:
                # multi-catch: the variable is only known by its first alternative
                stmts.append(_stmt("local", owner, n, name=slice_text(src_b, name), type=ctypes[0]))
        elif n.type == "object_creation_expression":
            t = n.child_by_field_name("type")
            stmts.append(_stmt("new", owner, n, type=clean_type(slice_text(src_b, t)),
                               arity=_arity(n), handlers=list(handlers)))
        elif n.type == "explicit_constructor_invocation":
            ctor = n.child_by_field_name("constructor")
            stmts.append(_stmt("ctor_call", owner, n, target=slice_text(src_b, ctor) if ctor else "this",
                               arity=_arity(n), handlers=list(handlers)))
        elif n.type == "method_invocation":
            obj = n.child_by_field_name("object")
            name = n.child_by_field_name("name")
            recv = slice_text(src_b, obj).strip() if obj else None
            stmts.append(_stmt("call", owner, n, recv=recv, name=slice_text(src_b, name),
                               arity=_arity(n), handlers=list(handlers)))
        elif n.type == "throw_statement":
            expr = next((c for c in n.named_children if c.type not in _COMMENTS), None)
            if expr is None:
                continue
            if expr.type == "object_creation_expression":
                t = expr.child_by_field_name("type")
                stmts.append(_stmt("throw", owner, n, type=clean_type(slice_text(src_b, t)), var=None))
            elif expr.type == "identifier":
                stmts.append(_stmt("throw", owner, n, type=None, var=slice_text(src_b, expr)))
            else:
                stmts.append(_stmt("throw", owner, n, type=None, var=None))
