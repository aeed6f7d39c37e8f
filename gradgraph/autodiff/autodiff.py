# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
from typing import FrozenSet, Iterable

from gradgraph.autodiff.backward_pass_generator import BackwardPassGenerator
from gradgraph.autodiff.base_abc import AutoDiffException
from gradgraph.graph.operators import NetOp, OperatorBase


def backward(forward_op: OperatorBase, no_grad_vars: Iterable[str] = ()) -> OperatorBase:
    """ Build the backward graph of ``forward_op`` using reverse-mode automatic differentiation.

        The forward graph may contain:

        * Operators with a registered gradient operator maker (see
          :class:`~gradgraph.autodiff.base_abc.GradientOpMaker`)
        * Networks of operators (subject to the same constraints)
        * Recurrent operators, whose step networks are differentiated once

        Gradients of variables in ``no_grad_vars`` are never computed. Where a gradient operator
        needs such a gradient as input, a ``fill_zeros_like`` operator provides zeros instead.

        :param forward_op: the root of the forward graph. It is not modified.
        :param no_grad_vars: forward variable names that must not receive gradients.
        :return: the root of the backward graph.
        :raises UnregisteredGradientType: if an operator that needs a gradient has no registered maker.
    """
    return BackwardPassGenerator(forward_op=forward_op, no_grad_vars=no_grad_vars).backward()


def append_backward(block: NetOp, no_grad_vars: Iterable[str] = ()) -> FrozenSet[str]:
    """ Append the backward operators of a block to the block itself.

        The backward graph of the block's current operators is built as with
        :func:`backward`, and its top-level operators are appended to
        ``block.ops`` after the forward operators.

        :param block: the network holding the forward operators.
        :param no_grad_vars: forward variable names that must not receive gradients.
        :return: the gradient names that were not produced, for use when building
                 the backward pass of further blocks.
    """
    if not isinstance(block, NetOp):
        raise AutoDiffException(f"Expected a network to append the backward pass to, got {block!r}")

    gen = BackwardPassGenerator(forward_op=block, no_grad_vars=no_grad_vars)
    result = gen.backward()
    # A skipped block yields an empty no-op network, which adds nothing
    block.ops.extend(result.ops)
    return frozenset(gen.no_grad_names)
