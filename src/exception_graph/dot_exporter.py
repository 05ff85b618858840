from graphviz import Digraph

from .models import CallChain

HANDLED_COLOR = "#2e7d32"
ESCAPED_COLOR = "#c62828"


def _escape_dot_id(node_id: str) -> str:
    """Escape special characters in DOT node IDs"""
    for ch in ":#()<>,.?[]":
        node_id = node_id.replace(ch, "_")
    return node_id


def chains_to_digraph(chains: list[CallChain], name: str = "chains") -> Digraph:
    """
    One node per method, one edge per (callee, caller, exception) step.
    Edges into a method that catches the exception are green, the rest red.
    """
    g = Digraph(name, format="png")
    g.attr("node", shape="box", style="filled", fillcolor="#cfe8f3")
    sources = {c.throw_from for c in chains}
    seen_nodes = set()
    seen_edges = set()

    def node(sig):
        key = _escape_dot_id(str(sig))
        if key not in seen_nodes:
            seen_nodes.add(key)
            g.node(key, str(sig), fillcolor="#f8d7da" if sig in sources else "#cfe8f3")
        return key

    for chain in chains:
        prev = node(chain.throw_from)
        for entry in chain.chain:
            dst = node(entry.method)
            edge_key = (prev, dst, chain.exception)
            if edge_key not in seen_edges:
                seen_edges.add(edge_key)
                color = HANDLED_COLOR if entry.handled else ESCAPED_COLOR
                g.edge(prev, dst, label=chain.exception or "", color=color, fontcolor=color)
            if entry.handled:
                break  # nothing propagates past the handler
            prev = dst
    return g


def to_dot(chains: list[CallChain], out_png: str, out_svg: str) -> bool:
    try:
        g = chains_to_digraph(chains)
        g.render(out_png, cleanup=True)
        g.format = "svg"
        g.render(out_svg, cleanup=True)
        print(f"Generated graphs: {out_png}.png and {out_svg}.svg")
        return True
    except Exception as e:
        print(f"Warning: Could not generate graphs: {e}")
        print("Make sure Graphviz is installed and available in PATH")
        return False
