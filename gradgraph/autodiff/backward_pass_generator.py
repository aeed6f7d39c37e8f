# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
    Construction of backward graphs.
    This module exposes the BackwardPassGenerator that turns a forward operator graph into the operator graph
    computing its gradients.
"""
import logging
from typing import Iterable, List, Optional, Set

from gradgraph.config import Config
from gradgraph.graph.naming import (EMPTY_VAR_NAME, FILL_ZEROS_LIKE_TYPE, GENERATED_BACKWARD_TYPE, grad_var_name,
                                    strip_grad_suffix, zero_var_name)
from gradgraph.graph.operators import NetOp, OperatorBase, RecurrentOp, create_op, nop
from gradgraph.graph.validation import validate_backward_graph

# Autodiff imports
from gradgraph.autodiff.base_abc import AutoDiffException, InconsistentGraphError, create_grad_op
from gradgraph.autodiff.duplicates import (DuplicateIndex, collect_outputs, insert_accumulations, repeated_outputs,
                                           resolve_duplicate_outputs, split_repeated_outputs)
from gradgraph.autodiff.no_grad import SkipDecision, should_skip

log = logging.getLogger(__name__)


class BackwardPassGenerator:
    """ Class that holds the state of one backward graph construction.

        See autodiff.py for examples of usage.
        :param forward_op: the root of the forward graph. It is not modified.
        :param no_grad_vars: forward variable names that must not receive gradients.
    """

    def __init__(self, *, forward_op: OperatorBase, no_grad_vars: Optional[Iterable[str]] = None):
        self.forward_op = forward_op

        #: Gradient names known to be unnecessary or unproducible. Only grows during ``backward``.
        self.no_grad_names: Set[str] = {grad_var_name(EMPTY_VAR_NAME)}
        self.no_grad_names.update(grad_var_name(name) for name in (no_grad_vars or ()))

        #: Operator type used to sum duplicated gradients
        self.accumulation_type: str = Config.get('autodiff', 'accumulation_op')

        self._next_uid = 0
        self._applied = False

    def backward(self) -> OperatorBase:
        """ Generate the backward graph of the forward graph.

            :return: the root of the backward graph. A network unless the forward
                     root is a single operator whose gradient needs no zero-filled
                     inputs, in which case the gradient operator itself.
        """
        if self._applied:
            raise AutoDiffException("Backward may only be called once. Instantiate a new BackwardPassGenerator.")
        self._applied = True

        result = self._backward_recursive(self.forward_op)

        if Config.get_bool('autodiff', 'validate'):
            validate_backward_graph(result)

        if Config.get_bool('debugprint'):
            print(result.debug_string())
        log.debug(f"Generated backward graph of {self.forward_op.type}, {len(self.no_grad_names)} gradients skipped")
        return result

    def _scope_id(self) -> int:
        uid = self._next_uid
        self._next_uid += 1
        return uid

    def _backward_recursive(self, forward_op: OperatorBase) -> OperatorBase:
        if should_skip(forward_op, self.no_grad_names) is not SkipDecision.Compute:
            return nop()

        if isinstance(forward_op, NetOp):
            return self._reverse_net(forward_op)
        return self._reverse_op(forward_op)

    def _reverse_net(self, forward_net: NetOp) -> NetOp:
        """ Reverse the children of a network and resolve gradients written by several of them. """
        grad_ops: List[OperatorBase] = []
        dup_outputs: DuplicateIndex = {}
        for position, fwd in enumerate(reversed(forward_net.ops)):
            bwd = self._backward_recursive(fwd)
            collect_outputs(dup_outputs, bwd, position)
            grad_ops.append(bwd)

        # Taken after the children, so nested networks get lower ids
        scope_id = self._scope_id()
        insertions = resolve_duplicate_outputs(dup_outputs, grad_ops, scope_id, self.accumulation_type)
        insert_accumulations(grad_ops, insertions)

        log.debug(f"Reversed network {forward_net.type} (scope {scope_id}): {len(grad_ops)} operators, "
                  f"{len(insertions)} accumulations")
        return NetOp(GENERATED_BACKWARD_TYPE, grad_ops)

    def _reverse_op(self, forward_op: OperatorBase) -> OperatorBase:
        """ Create the gradient operator of a single operator, zero-filling gradient inputs that are never computed
            and discarding gradient outputs that are not needed. """
        grad_op = create_grad_op(forward_op)

        fill_zeros_ops: List[OperatorBase] = []
        for grad_input in dict.fromkeys(grad_op.input_vars()):
            if grad_input in self.no_grad_names:
                prefix = strip_grad_suffix(grad_input)
                zero_name = zero_var_name(prefix)
                grad_op.rename(grad_input, zero_name)
                fill_zeros_ops.append(create_op(FILL_ZEROS_LIKE_TYPE, {"X": [prefix]}, {"Y": [zero_name]}))

        for grad_output in dict.fromkeys(grad_op.output_vars()):
            if grad_output in self.no_grad_names:
                grad_op.rename(grad_output, EMPTY_VAR_NAME)

        # A gradient written in several slots of one operator, e.g. mul(X=[x], Y=[x])
        accumulations: List[OperatorBase] = []
        if not grad_op.is_net() and repeated_outputs(grad_op):
            accumulations = split_repeated_outputs(grad_op, self._scope_id(), self.accumulation_type)

        if isinstance(forward_op, RecurrentOp):
            self._reverse_step_net(forward_op, grad_op)

        if not fill_zeros_ops and not accumulations:
            return grad_op
        return NetOp(GENERATED_BACKWARD_TYPE, fill_zeros_ops + [grad_op] + accumulations)

    def _reverse_step_net(self, forward_op: RecurrentOp, grad_op: OperatorBase):
        """ Differentiate the step network of a recurrent operator and attach it to its gradient operator.

            The step network is owned by ``forward_op`` and cannot contain it, so this recursion
            runs exactly once per recurrent operator.
        """
        if not isinstance(grad_op, RecurrentOp):
            raise InconsistentGraphError(f"Gradient operator {grad_op.type} of recurrent operator {forward_op.type} "
                                         f"cannot hold a step network")
        if forward_op.step_net is None:
            raise InconsistentGraphError(f"Recurrent operator {forward_op.type} has no step network")
        grad_op.step_net = self._backward_recursive(forward_op.step_net)
