# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
Default Gradient Operator Maker.

Builds the conventional gradient operator of a forward operator: the gradient operator of ``T`` has type ``T_grad``,
reads every forward input and output plus the gradients of the forward outputs, and writes the gradients of the
forward inputs. For a forward operator ``mul(X=[x], Y=[y]) -> Out=[z]`` this yields::

    mul_grad(X=[x], Y=[y], Out=[z], Out@GRAD=[z@GRAD]) -> X@GRAD=[x@GRAD], Y@GRAD=[y@GRAD]
"""

import copy
import typing

from gradgraph.autodiff.base_abc import GradientOpMaker, InconsistentGraphError
from gradgraph.graph.naming import grad_var_name
from gradgraph.graph.operators import Operator, OperatorBase, VarMap
from gradgraph.registry import autoregister_params

#: Forward operator types differentiated with the default gradient layout.
DIFFERENTIABLE_OP_TYPES = (
    "add",
    "concat",
    "cross_entropy",
    "elementwise_add",
    "elementwise_mul",
    "fc",
    "matmul",
    "mean",
    "mul",
    "relu",
    "rowwise_add",
    "scale",
    "sigmoid",
    "softmax",
    "split",
    "sub",
    "tanh",
)


def default_grad_var_maps(forward_op: OperatorBase) -> typing.Tuple[VarMap, VarMap]:
    """Compute the input and output argument maps of the conventional gradient operator.

    :param forward_op: The forward operator.
    :return: A tuple of (gradient inputs, gradient outputs).
    :raises InconsistentGraphError: If an input and an output argument of ``forward_op`` share a name.
    """
    inputs: VarMap = {arg: list(names) for arg, names in forward_op.inputs.items()}
    for arg, names in forward_op.outputs.items():
        if arg in inputs:
            raise InconsistentGraphError(f"Operator {forward_op.type} uses argument name {arg} both as input and "
                                         f"output")
        inputs[arg] = list(names)
    for arg, names in forward_op.outputs.items():
        inputs[grad_var_name(arg)] = [grad_var_name(n) for n in names]

    outputs: VarMap = {grad_var_name(arg): [grad_var_name(n) for n in names] for arg, names in forward_op.inputs.items()}
    return inputs, outputs


@autoregister_params(op_types=DIFFERENTIABLE_OP_TYPES, name="default")
class DefaultGradientOpMaker(GradientOpMaker):
    """Gradient maker for operators following the conventional gradient layout.

    Further operator types can reuse the layout by subclassing and registering the subclass::

        @autoregister_params(op_type="my_op", name="my_op")
        class MyOpGradientMaker(DefaultGradientOpMaker):
            pass
    """

    @staticmethod
    def grad_op_type(forward_op: OperatorBase) -> str:
        return forward_op.type + "_grad"

    @classmethod
    def make_grad_op(cls, forward_op: OperatorBase) -> OperatorBase:
        inputs, outputs = default_grad_var_maps(forward_op)
        return Operator(cls.grad_op_type(forward_op), inputs, outputs, copy.deepcopy(forward_op.attrs))
