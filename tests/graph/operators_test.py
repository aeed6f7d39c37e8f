# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
import copy

import pytest

from gradgraph.autodiff import InconsistentGraphError
from gradgraph.graph import naming
from gradgraph.graph.operators import NetOp, Operator, RecurrentOp, create_op, nop


def test_naming():
    assert naming.grad_var_name("X") == "X@GRAD"
    assert naming.zero_var_name("X") == "X@ZERO"
    assert naming.strip_grad_suffix("X@GRAD") == "X"
    assert naming.rename_alias("H@GRAD", 3, 1) == "H@GRAD@RENAME@3@1"
    assert naming.grad_var_name(naming.EMPTY_VAR_NAME) == "@EMPTY@@GRAD"


def test_rename():
    op = create_op("mul", {"X": ["a", "b"], "Y": ["a"]}, {"Out": ["a"]})
    op.rename("a", "c")
    assert op.inputs == {"X": ["c", "b"], "Y": ["c"]}
    assert op.outputs == {"Out": ["c"]}

    # Unknown names are left alone
    op.rename("z", "w")
    assert op.inputs == {"X": ["c", "b"], "Y": ["c"]}


def test_rename_to_itself():
    op = create_op("mul", {"X": ["x"], "Y": ["y"]}, {"Out": ["z"]})
    before = copy.deepcopy(op)
    op.rename("x", "x")
    assert op == before


def test_create_op_copies_arguments():
    xs = ["x"]
    op = create_op("scale", {"X": xs}, {"Out": ["y"]}, {"scale": 2.0})
    op.rename("x", "w")
    assert xs == ["x"]
    assert op.attrs == {"scale": 2.0}


def test_single_arguments():
    op = create_op("mul", {"X": ["x"], "Y": ["y", "w"]}, {"Out": ["z"]})
    assert op.input("X") == "x"
    assert op.output("Out") == "z"
    with pytest.raises(ValueError):
        op.input("Y")
    with pytest.raises(ValueError):
        op.output("Missing")


def test_net_inputs_outputs():
    net = NetOp(ops=[
        create_op("mul", {"X": ["x"], "Y": ["w"]}, {"Out": ["h"]}),
        create_op("sigmoid", {"X": ["h"]}, {"Out": ["y"]}),
        create_op("add", {"X": ["y"], "Y": ["b"]}, {"Out": ["h"]}),
    ])
    assert net.inputs == {"all": ["b", "w", "x"]}
    assert net.outputs == {"all": ["h", "y"]}
    assert net.intermediate_outputs() == ["h", "y"]
    assert net.is_net()
    assert len(net) == 3
    assert nop().inputs == {} and nop().outputs == {}


def test_net_rename_recurses():
    inner = NetOp(ops=[create_op("relu", {"X": ["a"]}, {"Out": ["b"]})])
    net = NetOp(ops=[inner, create_op("mean", {"X": ["b"]}, {"Out": ["c"]})])
    net.rename("b", "b2")
    assert inner.ops[0].outputs == {"Out": ["b2"]}
    assert net.ops[1].inputs == {"X": ["b2"]}
    assert net.outputs == {"all": ["b2", "c"]}


def test_structural_equality():
    a = NetOp(ops=[create_op("relu", {"X": ["a"]}, {"Out": ["b"]})])
    b = NetOp(ops=[create_op("relu", {"X": ["a"]}, {"Out": ["b"]})])
    assert a == b
    b.ops[0].rename("a", "c")
    assert a != b
    assert Operator("relu") != NetOp("relu")


def test_recurrent_cannot_contain_itself():
    rnn = RecurrentOp(inputs={"X": ["x"]}, outputs={"Out": ["h"]})
    with pytest.raises(InconsistentGraphError):
        rnn.step_net = NetOp(ops=[rnn])
    with pytest.raises(InconsistentGraphError):
        rnn.step_net = NetOp(ops=[NetOp(ops=[rnn])])
    assert rnn.step_net is None


def test_debug_string():
    net = NetOp(ops=[create_op("mul", {"X": ["x"], "Y": ["y"]}, {"Out": ["z"]})])
    text = net.debug_string()
    assert text.splitlines()[0] == "Op(plain_net), inputs:{all[x, y]}, outputs:{all[z]}."
    assert text.splitlines()[1] == "    Op(mul), inputs:{X[x], Y[y]}, outputs:{Out[z]}."


if __name__ == '__main__':
    test_naming()
    test_rename()
    test_rename_to_itself()
    test_net_inputs_outputs()
    test_net_rename_recurses()
    test_structural_equality()
