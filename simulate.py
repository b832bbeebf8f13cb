import argparse
import logging
import random

import numpy as np

from PushSum import Observer
from PushSum.Coordinator import Coordinator, ThreadedCoordinator
from PushSum.Initializer import (
    ConstantInitializer,
    LinearInitializer,
    ListInitializer,
    PeakInitializer,
    UniformInitializer,
)
from PushSum.Node import Node, Policy
from topologies import build_topology

# python3 simulate.py --num-workers 40 --topology complete --rounds 100 --plot pushsum.png


def build_initializer(args):
    if args.values:
        return ListInitializer(args.values)
    elif args.distribution == "uniform":
        return UniformInitializer(0.0, 1.0, seed=args.seed)
    elif args.distribution == "linear":
        return LinearInitializer(0.0, 1.0)
    elif args.distribution == "peak":
        return PeakInitializer(args.num_workers)
    elif args.distribution == "constant":
        return ConstantInitializer(1.0)
    else:
        raise NotImplementedError("unknown distribution: {}".format(args.distribution))


def run_pushsum_experiment(num_workers, topology, initializer, rounds=None, tolerance=None,
                           max_rounds=1000, policy=Policy.LOSSY, threaded=False, log_interval=10):
    # first we create a list of all nodes and give each its observation
    nodes = [Node(i) for i in range(num_workers)]
    initializer.apply(nodes)

    if threaded:
        coordinator = ThreadedCoordinator(nodes, topology, policy=policy, log_interval=log_interval)
    else:
        coordinator = Coordinator(nodes, topology, policy=policy, log_interval=log_interval)

    reports = coordinator.run(rounds=rounds, tolerance=tolerance, max_rounds=max_rounds)

    logging.info("Estimated means: {}".format(Observer.estimates(nodes).tolist()))
    logging.info("True mean: {}".format(coordinator.target))
    Observer.describe(nodes)

    return coordinator, [report.mse for report in reports]


def plot_errors(errors, label, path):
    import seaborn as sns
    import matplotlib.pyplot as plt

    sns.lineplot(x=list(range(1, len(errors) + 1)), y=errors, label=label)
    plt.yscale('log')
    plt.title('Push-Sum for Distributed Mean Estimation')
    plt.ylabel('MSE to true mean')
    plt.xlabel('Rounds')
    plt.savefig(path)
    plt.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Push-Sum gossip averaging")
    parser.add_argument(
        "--num-workers",
        type=int,
        default=10,
        metavar="N",
        help="number of nodes in the network (default: 10)",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=None,
        metavar="N",
        help="run exactly this many rounds",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="stop once no estimate changes by more than this within a round",
    )
    parser.add_argument(
        "--max-rounds",
        type=int,
        default=1000,
        metavar="N",
        help="upper bound on rounds when running to a tolerance (default: 1000)",
    )
    parser.add_argument(
        "--topology",
        default="complete",
        type=str,
        help="isolated, chain, ring, binary_tree, complete, random_tree, erdos_renyi",
    )
    parser.add_argument(
        "--p",
        default=0.5,
        type=float,
        help="edge probability of the random topologies (default: 0.5)",
    )
    parser.add_argument(
        "--values",
        type=float,
        nargs="+",
        default=None,
        help="explicit initial values, one per node",
    )
    parser.add_argument(
        "--distribution",
        default="uniform",
        type=str,
        help="uniform, linear, peak, constant",
    )
    parser.add_argument(
        "--policy",
        default="lossy",
        choices=[p.value for p in Policy],
        help="what a node without partner does with the second half (default: lossy)",
    )
    parser.add_argument(
        "--threaded",
        action="store_true",
        default=False,
        help="run every node of a round on its own thread",
    )
    parser.add_argument(
        "--seed",
        default=None,
        type=int,
        help="seed for topology and value generation",
    )
    parser.add_argument(
        "--set-deterministic",
        action="store_true",
        default=False,
        help="set deterministic or not",
    )
    parser.add_argument(
        "--log-interval",
        type=int,
        default=10,
        metavar="N",
        help="how many rounds to wait before logging progress",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str,
        help="DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--plot",
        default=None,
        type=str,
        help="save the MSE curve to this file",
    )

    args = parser.parse_args(argv)
    if args.set_deterministic:
        if args.seed is None:
            args.seed = 666
        np.random.seed(args.seed)
        random.seed(args.seed)

    logging.basicConfig(format="%(levelname)s:%(message)s", level=args.log_level.upper())

    if args.values:
        args.num_workers = len(args.values)
    if args.rounds is None and args.tolerance is None:
        parser.error("one of --rounds or --tolerance is required")

    topology = build_topology(args.topology, args.num_workers, seed=args.seed, p=args.p)
    coordinator, errors = run_pushsum_experiment(
        args.num_workers,
        topology,
        build_initializer(args),
        rounds=args.rounds,
        tolerance=args.tolerance,
        max_rounds=args.max_rounds,
        policy=Policy(args.policy),
        threaded=args.threaded,
        log_interval=args.log_interval,
    )

    if args.plot:
        plot_errors(errors, '{} Workers'.format(args.num_workers), args.plot)

    return coordinator


if __name__ == "__main__":
    main()
