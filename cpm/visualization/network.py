import logging

import networkx as nx
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from matplotlib.patches import Patch
import pandas as pd

from cpm.services.scheduler import is_sentinel
from cpm.utils.graph import topological_order

logger = logging.getLogger(__name__)


def make_edge_list(graph, order=None, include_sentinels=True):
    """
    List every dependency edge of the graph as (id, successor) rows.

    Args:
        graph: A TaskGraph; successors are resolved if they are not already
        order: Optional sequence of task ids to list the edges in
            (default: topological order)
        include_sentinels: Whether edges touching sentinel tasks are listed

    Returns:
        pandas.DataFrame with "id" and "successor" columns
    """
    graph.resolve_successors()
    ids = list(order) if order is not None else topological_order(graph.tasks)

    rows = []
    for task_id in ids:
        task = graph.lookup(task_id)
        for succ_id in task.successor_ids:
            if not include_sentinels and (is_sentinel(task_id) or is_sentinel(succ_id)):
                continue
            rows.append({"id": task_id, "successor": succ_id})

    return pd.DataFrame(rows, columns=["id", "successor"])


def build_network_graph(graph, include_sentinels=False):
    """Build a networkx DiGraph of the tasks, with scheduling data on the nodes."""
    G = nx.DiGraph()
    for task in graph:
        if not include_sentinels and is_sentinel(task.id):
            continue
        G.add_node(
            task.id,
            name=task.name,
            duration=task.duration,
            slack=task.slack,
            is_critical=task.is_critical,
        )

    edges = make_edge_list(graph, include_sentinels=include_sentinels)
    G.add_edges_from(edges.itertuples(index=False, name=None))
    return G


def create_network_diagram(scheduler, filename=None, show=True, layout="spring"):
    """
    Visualize the task dependency network with the critical path highlighted.

    Args:
        scheduler: A CPMScheduler that has been scheduled
        filename: Optional filename to save the diagram
        show: Whether to display the diagram (default: True)
        layout: Network layout type ('spring', 'dot', 'circular', 'shell', or 'spectral')

    Returns:
        The matplotlib figure
    """
    G = build_network_graph(scheduler.graph)

    fig = plt.figure(figsize=(12, 8))

    node_colors = [
        "red" if G.nodes[node]["is_critical"] else "skyblue" for node in G.nodes()
    ]

    edge_colors = []
    edge_widths = []
    for u, v in G.edges():
        critical_edge = (
            G.nodes[u]["is_critical"]
            and G.nodes[v]["is_critical"]
            and scheduler.graph.lookup(u).early_finish
            == scheduler.graph.lookup(v).early_start
        )
        if critical_edge:
            edge_colors.append("red")
            edge_widths.append(2.5)
        else:
            edge_colors.append("gray")
            edge_widths.append(1.0)

    # Choose layout algorithm
    if layout == "spring":
        pos = nx.spring_layout(G, seed=42)
    elif layout == "dot":
        try:
            pos = nx.nx_agraph.graphviz_layout(G, prog="dot")
        except ImportError:
            logger.warning("Graphviz not available. Using spring layout instead.")
            pos = nx.spring_layout(G, seed=42)
    elif layout == "circular":
        pos = nx.circular_layout(G)
    elif layout == "shell":
        pos = nx.shell_layout(G)
    elif layout == "spectral":
        pos = nx.spectral_layout(G)
    else:
        pos = nx.spring_layout(G, seed=42)

    nx.draw_networkx_nodes(
        G,
        pos,
        node_color=node_colors,
        node_size=600,
        node_shape="o",
        edgecolors="black",
    )

    nx.draw_networkx_edges(
        G,
        pos,
        edge_color=edge_colors,
        width=edge_widths,
        arrowsize=15,
        arrowstyle="-|>",
        connectionstyle="arc3,rad=0.1",
    )

    # Node labels with slack
    labels = {}
    for node in G.nodes():
        data = G.nodes[node]
        labels[node] = f"{node}: {data['name']}\n(slack {data['slack']:g}d)"

    bbox_props = dict(boxstyle="round,pad=0.3", fc="white", ec="gray", alpha=0.8)
    for node, label in labels.items():
        plt.text(
            pos[node][0],
            pos[node][1] - 0.02,
            label,
            horizontalalignment="center",
            bbox=bbox_props,
            fontsize=9,
        )

    legend_elements = [
        Patch(facecolor="red", edgecolor="black", label="Critical Task"),
        Patch(facecolor="skyblue", edgecolor="black", label="Task with Slack"),
        Line2D([0], [0], color="red", lw=2.5, label="Critical Path"),
        Line2D([0], [0], color="gray", lw=1, label="Dependency"),
    ]
    plt.legend(handles=legend_elements, loc="best", fontsize=10)

    plt.title("Project Network Diagram (Critical Path Method)", fontsize=14)
    plt.axis("off")

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
