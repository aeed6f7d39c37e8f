# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
from .naming import (GRAD_SUFFIX, ZERO_SUFFIX, EMPTY_VAR_NAME, RENAME_MARKER, NOP_TYPE, GENERATED_BACKWARD_TYPE,
                     FILL_ZEROS_LIKE_TYPE, grad_var_name, zero_var_name)
from .operators import OperatorBase, Operator, NetOp, RecurrentOp, create_op, nop
from .validation import InvalidGraphError, dependency_graph, validate_backward_graph
