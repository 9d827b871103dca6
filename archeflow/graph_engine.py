"""
DescriptorGraph: tree-enforced graph view of an archetype descriptor.

This module provides the graph structure the interpreter relies on for:
- Ownership checks (every node has exactly one parent, or is the root)
- Cycle detection
- Scope paths of inputs ("flavor.base")
- Export of the descriptor shape for tooling

Nodes are numbered in pre-order, so ids and exports are stable for a given tree.
"""

from typing import Any, Dict, List, Optional

import networkx as nx

from .ast import ASTNode, InputNode, walk
from .errors import DescriptorError


def join_path(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


class DescriptorGraph:
    """Directed tree over the descriptor nodes, edges point parent -> child."""

    def __init__(self, root: ASTNode):
        self.root = root
        self.graph: nx.DiGraph = nx.DiGraph()
        self._ids: Dict[int, int] = {}
        self._build()

    # ─── Construction ────────────────────────────────────────────

    def _build(self):
        stack = [(self.root, None)]
        while stack:
            node, parent = stack.pop()
            if not isinstance(node, ASTNode):
                raise DescriptorError(
                    f"{type(parent).__name__} has a child that is not a node: {node!r}")
            if id(node) in self._ids:
                # Revisiting a node means a cycle or a node owned twice
                if node is parent or self.is_ancestor(node, parent):
                    raise DescriptorError(
                        f"Cycle detected: {type(node).__name__} is its own ancestor")
                raise DescriptorError(
                    f"{type(node).__name__} is owned by more than one parent")
            nid = len(self._ids)
            self._ids[id(node)] = nid
            self.graph.add_node(nid, data=node)
            if parent is not None:
                self.graph.add_edge(self._ids[id(parent)], nid)
            stack.extend((child, node) for child in reversed(node.children))

        if not nx.is_arborescence(self.graph):
            raise DescriptorError("Descriptor is not a tree")

    # ─── Lookups ─────────────────────────────────────────────────

    def node_id(self, node: ASTNode) -> int:
        try:
            return self._ids[id(node)]
        except KeyError:
            raise DescriptorError(f"{type(node).__name__} is not part of this descriptor") from None

    def node(self, nid: int) -> ASTNode:
        return self.graph.nodes[nid]["data"]

    def nodes(self) -> List[ASTNode]:
        """All nodes in document order."""
        return list(walk(self.root))

    def parent(self, node: ASTNode) -> Optional[ASTNode]:
        preds = list(self.graph.predecessors(self.node_id(node)))
        return self.node(preds[0]) if preds else None

    def ancestors(self, node: ASTNode) -> List[ASTNode]:
        """Ancestors ordered from the root down to the direct parent."""
        path = nx.shortest_path(self.graph, 0, self.node_id(node))
        return [self.node(nid) for nid in path[:-1]]

    def is_ancestor(self, candidate: ASTNode, node: ASTNode) -> bool:
        cid = self._ids.get(id(candidate))
        nid = self._ids.get(id(node))
        if cid is None or nid is None:
            return False
        return cid in nx.ancestors(self.graph, nid)

    def depth(self, node: ASTNode) -> int:
        return len(nx.ancestors(self.graph, self.node_id(node)))

    # ─── Paths ───────────────────────────────────────────────────

    def scope_path(self, node: ASTNode) -> str:
        """Dotted names of the inputs enclosing ``node`` (excluding itself)."""
        names = [a.name for a in self.ancestors(node) if isinstance(a, InputNode)]
        return ".".join(names)

    def input_path(self, node: InputNode) -> str:
        return join_path(self.scope_path(node), node.name)

    def input_index(self) -> Dict[str, InputNode]:
        """Map every input path to its input node. Paths must be unique."""
        index: Dict[str, InputNode] = {}
        for node in self.nodes():
            if isinstance(node, InputNode):
                path = self.input_path(node)
                if path in index:
                    raise DescriptorError(
                        f"Duplicate input '{node.name}' in scope '{self.scope_path(node) or '<root>'}'")
                index[path] = node
        return index

    # ─── Export ──────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """Export the descriptor shape for tooling."""
        nodes = []
        for nid in sorted(self.graph.nodes):
            data = self.node(nid)
            node_info = {
                "id": nid,
                "kind": type(data).__name__,
                "parent": next(iter(self.graph.predecessors(nid)), None),
                "children": list(self.graph.successors(nid)),
                "depth": len(nx.ancestors(self.graph, nid)),
            }
            if isinstance(data, InputNode):
                node_info["path"] = self.input_path(data)
            nodes.append(node_info)

        return {
            "node_count": self.graph.number_of_nodes(),
            "edge_count": self.graph.number_of_edges(),
            "is_tree": nx.is_arborescence(self.graph),
            "nodes": nodes
        }
