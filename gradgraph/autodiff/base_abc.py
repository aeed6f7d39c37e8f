# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
Abstract Base Classes for Autodiff
"""
import abc
import logging
import typing

import gradgraph.registry
from gradgraph.graph.operators import OperatorBase

log = logging.getLogger(__name__)


class AutoDiffException(Exception):
    """Base class for all exceptions related to automatic differentiation failures."""
    pass


class UnregisteredGradientType(AutoDiffException):
    """Raised when no gradient operator maker is registered for a forward operator type."""

    def __init__(self, op_type: str):
        super().__init__(f"No gradient operator is registered for operator type \"{op_type}\"")
        self.op_type = op_type


class InconsistentGraphError(AutoDiffException):
    """Raised when an operator graph violates a structural assumption of the backward pass."""
    pass


@gradgraph.registry.make_registry
class GradientOpMaker(abc.ABC):
    """ABC for gradient operator makers.

    The register function expects an argument ``op_type=TYPE``, where ``TYPE`` is the forward operator type the
    maker supports, or ``op_types=(TYPE, ...)`` for several types.
    It also expects a ``name`` argument that names the maker.
    """

    @staticmethod
    def can_be_applied(forward_op: OperatorBase) -> bool:
        """Return whether this maker can produce a gradient operator for ``forward_op``.

        :param forward_op: The candidate forward operator.
        :return: True if the maker can be applied, False otherwise.
        """
        return True

    @staticmethod
    @abc.abstractmethod
    def make_grad_op(forward_op: OperatorBase) -> OperatorBase:
        """Create the gradient operator of ``forward_op``.

        For each output ``v`` of the forward operator whose gradient is consumed, the gradient operator reads
        ``v@GRAD``; for each input ``v`` whose gradient it computes, it writes ``v@GRAD``. The returned operator must
        not share argument lists with ``forward_op``, since the backward pass renames variables in place.

        :param forward_op: The operator from the forward graph.
        :return: A newly created gradient operator.
        """
        ...


def _supported_types(args: typing.Dict[str, typing.Any]) -> typing.Collection[str]:
    if "op_type" in args:
        return (args["op_type"], )
    return args.get("op_types", ())


def find_gradient_op_maker(forward_op: OperatorBase) -> typing.Optional[typing.Type[GradientOpMaker]]:
    """Try to find the gradient operator maker for ``forward_op``.

    :param forward_op: The forward operator.
    :return: The first registered maker that supports the operator type and can be applied, or None.
    """
    for impl, args in GradientOpMaker.extensions().items():
        if "name" not in args:
            raise ValueError(f"Expected name in arguments of gradient operator maker {impl}.")
        if forward_op.type in _supported_types(args) and impl.can_be_applied(forward_op):
            return impl
    return None


def create_grad_op(forward_op: OperatorBase) -> OperatorBase:
    """Create the gradient operator of ``forward_op`` using the registered makers.

    :param forward_op: The forward operator.
    :return: The gradient operator.
    :raises UnregisteredGradientType: If no registered maker supports the operator type.
    """
    maker = find_gradient_op_maker(forward_op)
    if maker is None:
        raise UnregisteredGradientType(forward_op.type)
    grad_op = maker.make_grad_op(forward_op)
    log.debug(f"Created {grad_op.type} for {forward_op.type} using {maker.__name__}")
    return grad_op


# Register the implementations
import gradgraph.autodiff.implementations
