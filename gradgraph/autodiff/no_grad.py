# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
Pruning of operators whose gradients are not needed.
"""
import logging
from typing import Iterable, Set

import aenum

from gradgraph.graph.naming import grad_var_name
from gradgraph.graph.operators import OperatorBase

log = logging.getLogger(__name__)


class SkipDecision(aenum.AutoNumberEnum):
    """ Outcome of the no-gradient check of a single forward operator. """

    SkipEntirely = ()  #: No input can receive a gradient
    SkipOutputsOnly = ()  #: No output gradient exists, so no input gradient can be produced
    Compute = ()  #: A real gradient operator is required


def all_grads_in_set(names: Iterable[str], no_grad_names: Set[str]) -> bool:
    """ Returns True if the gradient names of all ``names`` are in ``no_grad_names``.
        Vacuously True for no names. """
    return all(grad_var_name(n) in no_grad_names for n in names)


def should_skip(op: OperatorBase, no_grad_names: Set[str]) -> SkipDecision:
    """ Decides whether the gradient of ``op`` can be skipped.

        Inputs are checked before outputs, so an operator without inputs is
        skipped entirely. When only the output gradients are missing, the
        gradient names of all inputs of ``op`` are added to ``no_grad_names``.

        :param op: The forward operator.
        :param no_grad_names: Gradient names known to be unnecessary or
                              unproducible. Modified in place.
        :return: The skip decision.
    """
    if all_grads_in_set(op.input_vars(), no_grad_names):
        log.debug(f"Skipping gradient of {op.type}: no input requires a gradient")
        return SkipDecision.SkipEntirely

    if all_grads_in_set(op.output_vars(), no_grad_names):
        log.debug(f"Skipping gradient of {op.type}: no output gradient is available")
        no_grad_names.update(grad_var_name(n) for n in op.input_vars())
        return SkipDecision.SkipOutputsOnly

    return SkipDecision.Compute
