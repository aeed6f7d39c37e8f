# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
""" Exception classes and methods for validation of generated backward graphs. """
from typing import List

import networkx as nx

from gradgraph.graph.naming import EMPTY_VAR_NAME
from gradgraph.graph.operators import NetOp, OperatorBase, RecurrentOp


class InvalidGraphError(Exception):
    """ A class of exceptions thrown when graph validation fails. """

    def __init__(self, message: str, op: OperatorBase = None, var_name: str = None):
        self.message = message
        self.op = op
        self.var_name = var_name

    def __str__(self):
        if self.var_name is not None:
            return f"{self.message} (variable {self.var_name})"
        return self.message


def flatten(op: OperatorBase) -> List[OperatorBase]:
    """ Returns the atomic operators of ``op`` in execution order.

        Recurrent operators are returned as single operators; their step
        networks are separate scopes.
    """
    if isinstance(op, NetOp):
        return [inner for child in op.ops for inner in flatten(child)]
    return [op]


def dependency_graph(op: OperatorBase) -> nx.DiGraph:
    """ Builds the dataflow graph of the flattened operator sequence of ``op``.

        Operator nodes are keyed by their position in the flattened sequence
        and carry the operator in the ``op`` attribute. Variable nodes are keyed
        by name. A read adds an edge from the variable to the operator, a write
        an edge from the operator to the variable.

        :param op: The operator or network to analyze.
        :return: A ``networkx.DiGraph``.
    """
    graph = nx.DiGraph()
    for position, atomic in enumerate(flatten(op)):
        graph.add_node(position, op=atomic, kind='op')
        for name in atomic.input_vars():
            graph.add_node(name, kind='var')
            graph.add_edge(name, position)
        for name in atomic.output_vars():
            graph.add_node(name, kind='var')
            graph.add_edge(position, name)
    return graph


def writers(graph: nx.DiGraph, var_name: str) -> List[OperatorBase]:
    """ Returns the operators writing ``var_name`` in a dependency graph, in order. """
    return [graph.nodes[p]['op'] for p in sorted(graph.predecessors(var_name))]


def validate_backward_graph(op: OperatorBase):
    """ Verifies that no variable except the discard placeholder is written
        by more than one operator, in ``op`` and in every recurrent step
        network it contains.

        Raises an InvalidGraphError with the offending variable on failure.
    """
    graph = dependency_graph(op)
    for node, kind in graph.nodes(data='kind'):
        if kind != 'var' or node == EMPTY_VAR_NAME:
            continue
        if graph.in_degree(node) > 1:
            types = ', '.join(w.type for w in writers(graph, node))
            raise InvalidGraphError(f"Variable is written by multiple operators: {types}", op, node)

    for position, kind in graph.nodes(data='kind'):
        if kind == 'op':
            atomic = graph.nodes[position]['op']
            if isinstance(atomic, RecurrentOp) and atomic.step_net is not None:
                validate_backward_graph(atomic.step_net)
