"""
JSON snapshots of a database's ingestion state, and chain serialization.

A snapshot keeps what `build()` needs (method facts, methods known only by
binding, class records), so loading one and building again gives the same
chains as the original database.
"""

import json
from pathlib import Path
from typing import Optional

from .config import AnalyzerConfig
from .models import CallChain, ClassInfo, MethodInfo, MethodSignature
from .project_database import ProjectDatabase

SNAPSHOT_VERSION = 1

_key = MethodSignature.sort_key


def method_info_to_dict(info: MethodInfo) -> dict:
    return {
        "signature": info.signature.to_dict(),
        "callings": [c.to_dict() for c in sorted(info.callings, key=_key)],
        "throws_in_body": sorted(info.throws_in_body),
        "handlers": [
            {"callee": callee.to_dict(), "catches": sorted(catches)}
            for callee, catches in sorted(info.calling_to_handlers.items(),
                                          key=lambda kv: _key(kv[0]))
        ],
    }


def method_info_from_dict(data: dict) -> MethodInfo:
    info = MethodInfo(MethodSignature.from_dict(data["signature"]))
    info.callings = {MethodSignature.from_dict(c) for c in data.get("callings", [])}
    info.throws_in_body = set(data.get("throws_in_body", []))
    for h in data.get("handlers", []):
        info.calling_to_handlers[MethodSignature.from_dict(h["callee"])] = set(h["catches"])
    return info


def database_to_dict(db: ProjectDatabase) -> dict:
    adapter = db.class_adapter
    # synthesized infos are rebuilt from the bound-only list on load
    parsed = [info for sig, info in db.method_to_info.items()
              if not (sig in db.method_to_binding and _is_bare(info))]
    bound_only = [sig for sig in db.method_to_binding]
    return {
        "version": SNAPSHOT_VERSION,
        "methods": [method_info_to_dict(i) for i in sorted(parsed, key=lambda i: _key(i.signature))],
        "bound_methods": [s.to_dict() for s in sorted(bound_only, key=_key)],
        "classes": [adapter(b).to_dict() for _, b in sorted(db.class_to_binding.items())],
    }


def _is_bare(info: MethodInfo) -> bool:
    return not (info.callings or info.throws_in_body or info.calling_to_handlers)


def database_from_dict(data: dict, config: Optional[AnalyzerConfig] = None) -> ProjectDatabase:
    """Rebuild an unsealed database; call `build()` on the result"""
    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {version!r}")
    db = ProjectDatabase(config)
    for m in data["methods"]:
        db.add_method(method_info_from_dict(m))
    for s in data["bound_methods"]:
        db.add_method_binding(MethodSignature.from_dict(s))
    for c in data["classes"]:
        info = ClassInfo.from_binding(c)
        db.add_class_binding(info.qualified_name, info)
    return db


def dump_snapshot(db: ProjectDatabase, path: str | Path):
    Path(path).write_text(json.dumps(database_to_dict(db), indent=2, sort_keys=True),
                          encoding="utf-8")


def load_snapshot(path: str | Path, config: Optional[AnalyzerConfig] = None) -> ProjectDatabase:
    return database_from_dict(json.loads(Path(path).read_text(encoding="utf-8")), config)


def chain_to_dict(chain: CallChain) -> dict:
    return {
        "throw_from": str(chain.throw_from),
        "exception": chain.exception,
        "chain": [{"method": str(e.method), "handled": e.handled} for e in chain.chain],
        "escapes": chain.escapes,
    }


def chains_to_json(chains) -> str:
    return json.dumps([chain_to_dict(c) for c in chains], sort_keys=True)
