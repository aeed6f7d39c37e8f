# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
Gradient Operator Maker for recurrent operators.
"""

import copy

from gradgraph.autodiff.base_abc import GradientOpMaker
from gradgraph.autodiff.implementations.default_ops import default_grad_var_maps
from gradgraph.graph.operators import OperatorBase, RecurrentOp
from gradgraph.registry import autoregister_params


@autoregister_params(op_type="recurrent", name="recurrent")
class RecurrentGradientOpMaker(GradientOpMaker):
    """Creates the ``recurrent_grad`` operator of a recurrent operator.

    The gradient operator is created without a step network. The backward pass differentiates the forward step
    network once and attaches the result.
    """

    @staticmethod
    def can_be_applied(forward_op: OperatorBase) -> bool:
        return isinstance(forward_op, RecurrentOp)

    @staticmethod
    def make_grad_op(forward_op: OperatorBase) -> OperatorBase:
        inputs, outputs = default_grad_var_maps(forward_op)
        return RecurrentOp("recurrent_grad", inputs, outputs, copy.deepcopy(forward_op.attrs))
