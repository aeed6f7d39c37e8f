# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
gradgraph Automatic Differentiation (AD) System.

This module builds backward graphs: given a forward graph of operators, it produces the operator graph that
computes the gradients of the forward outputs with respect to the forward inputs.

Main Components
---------------
- **backward**: Main entry point for building the backward graph of an operator
- **append_backward**: Appends the backward operators of a block to the block
- **BackwardPassGenerator**: Core recursive algorithm
- **GradientOpMaker**: ABC for creating the gradient operator of a forward operator type
- **AutoDiffException**: Base exception for autodiff errors

Key Features
------------
- Pruning of operators whose gradients are not needed
- Accumulation of gradients written by several operators
- Zero-filling of gradient inputs that are never computed
- Recurrent operators with differentiated step networks
"""

from .base_abc import (GradientOpMaker, AutoDiffException, UnregisteredGradientType, InconsistentGraphError,
                       create_grad_op, find_gradient_op_maker)
from .no_grad import SkipDecision, should_skip
from .backward_pass_generator import BackwardPassGenerator
from .autodiff import backward, append_backward

__all__ = [
    # Main API
    "backward",
    "append_backward",
    # Core classes
    "BackwardPassGenerator",
    "SkipDecision",
    "should_skip",
    # Extension points
    "GradientOpMaker",
    "create_grad_op",
    "find_gradient_op_maker",
    # Exceptions
    "AutoDiffException",
    "UnregisteredGradientType",
    "InconsistentGraphError",
]
