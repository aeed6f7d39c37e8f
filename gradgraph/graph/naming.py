# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
""" Variable and operator naming conventions shared by the backward pass and
    the operator registry. The values are part of the contract with the
    registry and must be emitted verbatim. """

#: Suffix of the variable holding the gradient of a variable.
GRAD_SUFFIX = "@GRAD"

#: Suffix of a zero-filled stand-in for a gradient that is never computed.
ZERO_SUFFIX = "@ZERO"

#: Reserved name of an output that is intentionally discarded.
EMPTY_VAR_NAME = "@EMPTY@"

#: Marker inside aliases created when several operators write one gradient.
RENAME_MARKER = "@RENAME@"

#: Type of the placeholder operator that computes nothing.
NOP_TYPE = "@NOP@"

#: Type of every composite operator created by the backward pass.
GENERATED_BACKWARD_TYPE = "@GENERATED_BACKWARD@"

#: Operator type that fills a variable with zeros shaped like its input.
FILL_ZEROS_LIKE_TYPE = "fill_zeros_like"


def grad_var_name(name: str) -> str:
    """ Returns the name of the gradient variable of ``name``. """
    return name + GRAD_SUFFIX


def zero_var_name(name: str) -> str:
    """ Returns the name of the zero placeholder of ``name``. """
    return name + ZERO_SUFFIX


def strip_grad_suffix(grad_name: str) -> str:
    """ Returns the forward variable name of a gradient variable name.

        The suffix length is removed unconditionally; names that do not end
        in ``GRAD_SUFFIX`` are not detected.
    """
    return grad_name[:len(grad_name) - len(GRAD_SUFFIX)]


def rename_alias(name: str, scope_id: int, index: int) -> str:
    """ Returns the alias given to the ``index``-th writer of ``name`` in the
        composite expansion with id ``scope_id``. """
    return f"{name}{RENAME_MARKER}{scope_id}@{index}"
