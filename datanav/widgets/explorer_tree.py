"""Tree widget mirroring the schema explorer hierarchy."""

from __future__ import annotations

from typing import Callable

from textual import on
from textual.widgets import Tree
from textual.widgets.tree import TreeNode

from datanav.events import ChildrenReplaced, ExplorerEvent, NodePath, RefreshStateChanged
from datanav.explorer import ColumnNode, ExplorerNode, SchemaExplorer, ServerNode


class ExplorerTree(Tree[NodePath]):
    """Renders explorer nodes; expanding a branch asks the explorer to load it."""

    DEFAULT_CSS = """
    ExplorerTree {
        width: 36;
        min-width: 24;
        height: 1fr;
        border-right: solid $surface-darken-1;
        background: $surface-darken-2;
    }
    """

    def __init__(self, explorer: SchemaExplorer) -> None:
        super().__init__("Connections", id="explorer-tree")
        self.show_root = False
        self._explorer = explorer
        self._nodes: dict[NodePath, TreeNode[NodePath]] = {}
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def selected_path(self) -> NodePath | None:
        node = self.cursor_node
        if node is None or not node.data:
            return None
        return node.data

    async def on_mount(self) -> None:
        self._render_servers()
        self._unsubscribe = self._explorer.subscribe(self._handle_explorer_event)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    @on(Tree.NodeExpanded)
    def _handle_expanded(self, event: Tree.NodeExpanded[NodePath]) -> None:
        node = self._explorer_node(event.node)
        if node is not None and not node.is_expanded:
            self.run_worker(node.set_expanded(True), group="explorer", exit_on_error=False)

    @on(Tree.NodeCollapsed)
    def _handle_collapsed(self, event: Tree.NodeCollapsed[NodePath]) -> None:
        node = self._explorer_node(event.node)
        if node is not None and node.is_expanded:
            self.run_worker(node.set_expanded(False), group="explorer", exit_on_error=False)

    @on(Tree.NodeHighlighted)
    def _handle_highlighted(self, event: Tree.NodeHighlighted[NodePath]) -> None:
        if not event.node.data:
            return
        selector = getattr(self.app, "select_connection", None)
        if selector is not None:
            selector(event.node.data[0])

    def _handle_explorer_event(self, event: ExplorerEvent) -> None:
        if isinstance(event, ChildrenReplaced):
            if not event.path:
                self._render_servers()
            else:
                self._render_children(event.path)
        elif isinstance(event, RefreshStateChanged):
            tree_node = self._nodes.get(event.path)
            node = self._explorer.node_at(event.path)
            if tree_node is not None and node is not None:
                tree_node.set_label(_label_for(node))

    def _render_servers(self) -> None:
        self.root.remove_children()
        self._nodes.clear()
        for server in self._explorer.servers:
            tree_node = self.root.add(_label_for(server), data=server.path, expand=server.is_expanded)
            self._nodes[server.path] = tree_node
            self._add_children(tree_node, server)

    def _render_children(self, path: NodePath) -> None:
        tree_node = self._nodes.get(path)
        node = self._explorer.node_at(path)
        if tree_node is None or node is None:
            return
        self._forget_below(path)
        tree_node.remove_children()
        tree_node.set_label(_label_for(node))
        self._add_children(tree_node, node)

    def _add_children(self, tree_node: TreeNode[NodePath], node: ExplorerNode) -> None:
        for child in node.children:
            if isinstance(child, ColumnNode):
                self._nodes[child.path] = tree_node.add_leaf(child.display_text, data=child.path)
                continue
            child_node = tree_node.add(_label_for(child), data=child.path, expand=child.is_expanded)
            self._nodes[child.path] = child_node
            self._add_children(child_node, child)

    def _forget_below(self, path: NodePath) -> None:
        depth = len(path)
        for key in [key for key in self._nodes if len(key) > depth and key[:depth] == path]:
            del self._nodes[key]

    def _explorer_node(self, tree_node: TreeNode[NodePath]) -> ExplorerNode | None:
        if not tree_node.data:
            return None
        return self._explorer.node_at(tree_node.data)


def _label_for(node: ExplorerNode) -> str:
    label = node.name
    if isinstance(node, ServerNode):
        label = f"{'●' if node.is_connected else '○'} {label}"
    if node.is_refreshing:
        label = f"{label} …"
    return label


__all__ = ["ExplorerTree"]
