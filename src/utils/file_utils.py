from pathlib import Path

# build output and VCS metadata never hold sources worth indexing
SKIP_DIRS = {".git", ".svn", ".hg", "build", "target", "out", "node_modules"}


def find_files(root: str | Path, exts=(".java",)) -> list[Path]:
    root = Path(root)
    return sorted(p for p in root.rglob("*")
                  if p.suffix in exts and p.is_file()
                  and not SKIP_DIRS.intersection(p.relative_to(root).parts[:-1]))
