import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from utils.file_utils import find_files
from .binding_resolver import BindingResolver
from .config import AnalyzerConfig
from .java_parser import parse_file
from .project_database import ProjectDatabase

logger = logging.getLogger(__name__)


def index_repo(repo_path: str | Path) -> list[dict]:
    paths = find_files(repo_path, (".java",))
    files = []
    for p in paths:
        files.append(parse_file(p))
    logger.info("Parsed %d Java files under %s", len(files), repo_path)
    return files


def build_database(repo_path: str | Path,
                   config: Optional[AnalyzerConfig] = None) -> ProjectDatabase:
    """Parse, resolve and build: the whole front-end in one call"""
    resolver = BindingResolver().resolve(index_repo(repo_path))
    db = resolver.populate(ProjectDatabase(config))
    db.build()
    return db


def write_jsonl(path: str | Path, items: Iterable[dict]) -> int:
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for it in items:
            f.write(json.dumps(it, ensure_ascii=False, sort_keys=True) + "\n")
            count += 1
    return count
