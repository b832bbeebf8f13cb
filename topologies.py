import networkx as nx
import random
from networkx.generators.random_graphs import erdos_renyi_graph
from networkx import minimum_spanning_tree

__all__ = [
    "Topology",
    "IsolatedTopology",
    "ChainTopology",
    "RingTopology",
    "BinaryTreeTopology",
    "FullyConnectedTopology",
    "GraphTopology",
    "random_tree_topology",
    "build_topology",
]

class Topology():
    """
    Static overlay over ``num_workers`` nodes identified by 0..num_workers-1.

    Every round each node asks :meth:`neighbor_for` for one gossip partner,
    drawn uniformly from :meth:`neighbors`.
    """
    def __init__(self, num_workers, seed=None):
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1, got {}".format(num_workers))
        self.num_workers = num_workers
        self.rng = random.Random(seed)

    def neighbors(self, worker):
        return []

    def neighbor_for(self, worker, round):
        """Returns the id of the partner of ``worker`` in ``round``, or None."""
        neighbors = self.neighbors(worker)
        if not neighbors:
            return None
        return self.rng.choice(neighbors)

class IsolatedTopology(Topology):
    def __init__(self, num_workers, seed=None):
        super().__init__(num_workers=num_workers, seed=seed)

class ChainTopology(Topology):
    def __init__(self, num_workers, seed=None):
        super().__init__(num_workers=num_workers, seed=seed)

    def neighbors(self, worker):
        if self.num_workers == 1:
            return []
        elif worker == 0:
            return [1]
        elif worker == self.num_workers - 1:
            return [worker - 1]
        else:
            return [worker - 1, worker + 1]

class RingTopology(ChainTopology):
    def __init__(self, num_workers, seed=None):
        super().__init__(num_workers=num_workers, seed=seed)

    def neighbors(self, worker):
        if self.num_workers <= 2:
            return super().neighbors(worker)
        return [(worker - 1) % self.num_workers, (worker + 1) % self.num_workers]

class BinaryTreeTopology(Topology):
    def __init__(self, num_workers, seed=None):
        super().__init__(num_workers=num_workers, seed=seed)

    # heap layout rooted at 0: children of i are 2i+1 and 2i+2
    def neighbors(self, worker):
        if self.num_workers == 1:
            return []
        children = [worker * 2 + 1, worker * 2 + 2]
        children = [c for c in children if c < self.num_workers]
        if worker == 0:
            return children
        parent = (worker - 1) // 2
        return [parent, *children]

class FullyConnectedTopology(Topology):
    def __init__(self, num_workers, seed=None):
        super().__init__(num_workers=num_workers, seed=seed)

    def neighbors(self, worker):
        return [w for w in range(self.num_workers) if w != worker]

class GraphTopology(Topology):
    """Overlay backed by an undirected networkx graph with nodes 0..n-1."""
    def __init__(self, graph: nx.Graph, seed=None):
        super().__init__(num_workers=graph.number_of_nodes(), seed=seed)
        if set(graph.nodes) != set(range(self.num_workers)):
            raise ValueError("graph nodes must be labelled 0..{}".format(self.num_workers - 1))
        self.graph = graph

    def neighbors(self, worker):
        return sorted(nb for nb in self.graph.neighbors(worker) if nb != worker)

    def is_connected(self):
        return nx.is_connected(self.graph)

def random_tree_topology(num_workers, p=0.5, seed=None):
    # generate a random network graph and keep its minimum spanning tree
    g = erdos_renyi_graph(num_workers, p, seed=seed)
    g_mst = minimum_spanning_tree(g)
    return GraphTopology(g_mst, seed=seed)

def build_topology(name, num_workers, seed=None, p=0.5):
    if name == "isolated":
        return IsolatedTopology(num_workers, seed=seed)
    elif name == "chain":
        return ChainTopology(num_workers, seed=seed)
    elif name == "ring":
        return RingTopology(num_workers, seed=seed)
    elif name == "binary_tree":
        return BinaryTreeTopology(num_workers, seed=seed)
    elif name == "complete":
        return FullyConnectedTopology(num_workers, seed=seed)
    elif name == "random_tree":
        return random_tree_topology(num_workers, p=p, seed=seed)
    elif name == "erdos_renyi":
        return GraphTopology(erdos_renyi_graph(num_workers, p, seed=seed), seed=seed)
    else:
        raise NotImplementedError("unknown topology: {}".format(name))
