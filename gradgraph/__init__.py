# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
from .version import __version__
from .config import Config
from .graph import *
from .autodiff import (backward, append_backward, BackwardPassGenerator, GradientOpMaker, AutoDiffException,
                       UnregisteredGradientType, InconsistentGraphError)
