#!/usr/bin/env python3
"""
Command Line Interface for the Java exception chain analyzer

Parses a Java project, builds its dynamic call graph and writes, for every
method that may throw, the caller chains the exception propagates through.
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from exception_graph.analyzer import build_database, write_jsonl
from exception_graph.config import AnalyzerConfig
from exception_graph.dot_exporter import to_dot
from exception_graph.snapshot import chain_to_dict, dump_snapshot


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Java exception chains - where can each thrown exception propagate?",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Chains for every exception source in a project
  chains-cli --project /path/to/java/project

  # Only sources whose signature contains "Repository", rendered with Graphviz
  chains-cli --project /path/to/java/project --method Repository --dot

  # Treat unknown exception classes as never caught
  chains-cli --project /path/to/java/project --unknown-incompatible

Environment Variables:
  EXCEPTION_GRAPH_PLATFORM_PREFIXES: comma-separated platform package prefixes
  EXCEPTION_GRAPH_UNKNOWN_COMPATIBLE: true/false, catch matching for unknown classes
  EXCEPTION_GRAPH_OUTPUT_DIR: output directory
        """
    )

    parser.add_argument(
        "--project",
        required=True,
        help="Path to the Java project to analyze"
    )
    parser.add_argument(
        "--output",
        help="Output directory (overrides EXCEPTION_GRAPH_OUTPUT_DIR)"
    )
    parser.add_argument(
        "--method",
        help="Only report exception sources whose signature contains this text"
    )
    parser.add_argument(
        "--exact",
        action="store_true",
        help="Enumerate every simple caller path (slow, small projects only)"
    )
    parser.add_argument(
        "--dot",
        action="store_true",
        help="Render the chains with Graphviz"
    )
    parser.add_argument(
        "--snapshot",
        action="store_true",
        help="Also write a JSON snapshot of the analyzed database"
    )
    parser.add_argument(
        "--unknown-incompatible",
        action="store_true",
        help="Assume a catch of an unknown class does not catch anything"
    )
    parser.add_argument(
        "--platform-prefix",
        action="append",
        help="Platform package prefix (repeatable, overrides the configured prefixes)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    return parser


def config_from_args(args) -> AnalyzerConfig:
    config = AnalyzerConfig.from_env()
    overrides = {}
    if args.output:
        overrides["output_dir"] = args.output
    if args.unknown_incompatible:
        overrides["unknown_class_compatible"] = False
    if args.platform_prefix:
        overrides["platform_prefixes"] = tuple(args.platform_prefix)
    return dataclasses.replace(config, **overrides)


def main(argv=None) -> int:
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    project_path = Path(args.project)
    if not project_path.is_dir():
        print(f"❌ Error: Project path is not a directory: {project_path}")
        return 1

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"❌ Error: {e}")
        return 1

    print("🔍 Analyzing project...")
    db = build_database(project_path, config)

    sources = db.exception_sources()
    if args.method:
        sources = [s for s in sources if args.method in str(s)]

    chains = []
    for source in sources:
        if args.exact:
            chains.extend(db.exactly_all_chains_from_source(source))
        else:
            chains.extend(db.chains_from_source(source))

    out = Path(config.output_dir)
    out.mkdir(parents=True, exist_ok=True)
    write_jsonl(out / "chains.jsonl", (chain_to_dict(c) for c in chains))
    if args.snapshot:
        dump_snapshot(db, out / "snapshot.json")
    if args.dot:
        to_dot(chains, str(out / "chains"), str(out / "chains"))

    print_summary(db, sources, chains, out)
    return 0


def print_summary(db, sources, chains, out: Path):
    escaping = [c for c in chains if c.escapes]
    print("\n" + "=" * 60)
    print("📊 EXCEPTION CHAINS")
    print("=" * 60)
    print(f"\n📁 Methods: {len(db.method_to_info)}")
    print(f"📁 Classes: {len(db.class_to_binding)}")
    print(f"🎯 Exception sources: {len(sources)}")
    print(f"🎯 Chains: {len(chains)}")
    print(f"⚠️  Escaping chains: {len(escaping)}")
    for chain in escaping[:5]:
        path = " <- ".join(str(m) for m in chain.methods())
        print(f"  • {chain.exception}: {path}")
    if len(escaping) > 5:
        print(f"  ... and {len(escaping) - 5} more")
    print(f"\n✅ Wrote: {out}")
    print("\n" + "=" * 60)


if __name__ == "__main__":
    sys.exit(main())
