# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
Builtin Gradient Operator Makers.

Makers are registered with :class:`~gradgraph.autodiff.base_abc.GradientOpMaker` on import.

Maker Categories
----------------
1. **Default operators** (default_ops.py):
   - Conventional gradient layout for common differentiable operator types
   - Subclass ``DefaultGradientOpMaker`` to register further types

2. **Recurrent operators** (recurrent_ops.py):
   - Produces a recurrent gradient operator whose step network is attached by the backward pass
"""

from gradgraph.autodiff.implementations.default_ops import (DefaultGradientOpMaker, DIFFERENTIABLE_OP_TYPES,
                                                             default_grad_var_maps)
from gradgraph.autodiff.implementations.recurrent_ops import RecurrentGradientOpMaker

__all__ = [
    "DefaultGradientOpMaker",
    "DIFFERENTIABLE_OP_TYPES",
    "RecurrentGradientOpMaker",
    "default_grad_var_maps",
]
