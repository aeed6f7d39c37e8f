# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
import pytest

from gradgraph.graph.naming import EMPTY_VAR_NAME
from gradgraph.graph.operators import NetOp, RecurrentOp, create_op
from gradgraph.graph.validation import InvalidGraphError, dependency_graph, flatten, validate_backward_graph


def _two_writers():
    return NetOp(ops=[
        create_op("relu_grad", {"Out@GRAD": ["a@GRAD"]}, {"X@GRAD": ["h@GRAD"]}),
        NetOp(ops=[create_op("tanh_grad", {"Out@GRAD": ["b@GRAD"]}, {"X@GRAD": ["h@GRAD"]})]),
    ])


def test_flatten_order():
    net = _two_writers()
    assert [op.type for op in flatten(net)] == ["relu_grad", "tanh_grad"]


def test_dependency_graph():
    graph = dependency_graph(_two_writers())
    assert set(graph.predecessors("h@GRAD")) == {0, 1}
    assert list(graph.successors("a@GRAD")) == [0]
    assert graph.nodes[1]["op"].type == "tanh_grad"


def test_multiple_writers():
    with pytest.raises(InvalidGraphError) as err:
        validate_backward_graph(_two_writers())
    assert err.value.var_name == "h@GRAD"
    assert "relu_grad, tanh_grad" in str(err.value)


def test_discarded_outputs_may_repeat():
    net = NetOp(ops=[
        create_op("relu_grad", {"Out@GRAD": ["a@GRAD"]}, {"X@GRAD": [EMPTY_VAR_NAME]}),
        create_op("tanh_grad", {"Out@GRAD": ["b@GRAD"]}, {"X@GRAD": [EMPTY_VAR_NAME]}),
    ])
    validate_backward_graph(net)


def test_step_net_is_separate_scope():
    step = NetOp(ops=[
        create_op("relu_grad", {"Out@GRAD": ["a@GRAD"]}, {"X@GRAD": ["h@GRAD"]}),
        create_op("sum", {"X": ["p", "q"]}, {"Out": ["h@GRAD"]}),
    ])
    rnn = RecurrentOp("recurrent_grad", {"Out@GRAD": ["h@GRAD"]}, {"X@GRAD": ["x@GRAD"]}, step_net=step)
    net = NetOp(ops=[rnn, create_op("mean_grad", {"Out@GRAD": ["m@GRAD"]}, {"X@GRAD": ["h@GRAD"]})])

    # h@GRAD is written once in the outer scope, but twice inside the step network
    with pytest.raises(InvalidGraphError):
        validate_backward_graph(net)

    step.ops[1].rename("h@GRAD", "h2@GRAD")
    validate_backward_graph(net)


if __name__ == '__main__':
    test_flatten_order()
    test_dependency_graph()
    test_multiple_writers()
    test_discarded_outputs_may_repeat()
    test_step_net_is_separate_scope()
