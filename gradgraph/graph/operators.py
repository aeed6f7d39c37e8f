# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
""" Operator graph nodes: atomic operators, composite networks of operators,
    and recurrent operators that own a step network. """
import copy
from typing import Any, Dict, Iterator, List, Optional, Sequence

from gradgraph.graph.naming import NOP_TYPE

VarMap = Dict[str, List[str]]


def _copy_var_map(names: Optional[Dict[str, Sequence[str]]]) -> VarMap:
    return {arg: list(var_names) for arg, var_names in (names or {}).items()}


def _flatten(names: VarMap) -> List[str]:
    return [n for var_names in names.values() for n in var_names]


def _format_var_map(names: VarMap) -> str:
    return ', '.join(f"{arg}[{', '.join(var_names)}]" for arg, var_names in names.items())


class OperatorBase(object):
    """ Base class of all operators in a forward or backward graph.

        An operator has a type tag and maps argument names to ordered lists of
        variable names, separately for inputs and outputs.
    """

    def __init__(self,
                 type: str,
                 inputs: Optional[Dict[str, Sequence[str]]] = None,
                 outputs: Optional[Dict[str, Sequence[str]]] = None,
                 attrs: Optional[Dict[str, Any]] = None):
        self.type = type
        self._inputs = _copy_var_map(inputs)
        self._outputs = _copy_var_map(outputs)
        self.attrs = dict(attrs or {})

    @property
    def inputs(self) -> VarMap:
        return self._inputs

    @property
    def outputs(self) -> VarMap:
        return self._outputs

    def input(self, arg: str) -> str:
        """ Returns the single variable of input argument ``arg``. """
        return self._single(self.inputs, arg, 'input')

    def output(self, arg: str) -> str:
        """ Returns the single variable of output argument ``arg``. """
        return self._single(self.outputs, arg, 'output')

    def _single(self, names: VarMap, arg: str, kind: str) -> str:
        var_names = names.get(arg, [])
        if len(var_names) != 1:
            raise ValueError(f"Operator {self.type} expects exactly one {kind} in argument {arg}, "
                             f"got {len(var_names)}")
        return var_names[0]

    def input_vars(self) -> List[str]:
        """ Returns all input variable names in argument order. """
        return _flatten(self.inputs)

    def output_vars(self) -> List[str]:
        """ Returns all output variable names in argument order. """
        return _flatten(self.outputs)

    def rename(self, old_name: str, new_name: str):
        """ Replaces every occurrence of ``old_name`` among the inputs and
            outputs of this operator with ``new_name``, in place. """
        if old_name == new_name:
            return
        for names in (self._inputs, self._outputs):
            for var_names in names.values():
                for i, n in enumerate(var_names):
                    if n == old_name:
                        var_names[i] = new_name

    def is_net(self) -> bool:
        return False

    def debug_string(self, indent: int = 0) -> str:
        return (' ' * indent + f"Op({self.type}), inputs:{{{_format_var_map(self.inputs)}}}, "
                f"outputs:{{{_format_var_map(self.outputs)}}}.")

    def _structure(self):
        return (self.type, self.inputs, self.outputs, self.attrs)

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._structure() == other._structure()

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({self.type!r})"


class Operator(OperatorBase):
    """ An atomic operator. """
    pass


class NetOp(OperatorBase):
    """ A composite operator that runs an ordered sequence of child operators.

        The inputs and outputs of a network are derived from its children:
        ``outputs["all"]`` lists every variable written by a child, and
        ``inputs["all"]`` every variable read by a child before any earlier
        child wrote it.
    """

    ALL = "all"

    def __init__(self, type: str = "plain_net", ops: Optional[Sequence[OperatorBase]] = None, attrs=None):
        super().__init__(type, attrs=attrs)
        self.ops: List[OperatorBase] = list(ops or [])

    def _collect(self):
        input_set, output_set, intermediate = set(), set(), set()
        for op in self.ops:
            for name in op.input_vars():
                if name in output_set:
                    intermediate.add(name)
                else:
                    input_set.add(name)
            output_set.update(op.output_vars())
        return input_set, output_set, intermediate

    @property
    def inputs(self) -> VarMap:
        input_set, _, _ = self._collect()
        return {NetOp.ALL: sorted(input_set)} if input_set else {}

    @property
    def outputs(self) -> VarMap:
        _, output_set, _ = self._collect()
        return {NetOp.ALL: sorted(output_set)} if output_set else {}

    def intermediate_outputs(self) -> List[str]:
        """ Returns the variables that are written and then read inside the network. """
        _, _, intermediate = self._collect()
        return sorted(intermediate)

    def append_op(self, op: OperatorBase):
        self.ops.append(op)

    def insert_op(self, pos: int, op: OperatorBase):
        self.ops.insert(pos, op)

    def rename(self, old_name: str, new_name: str):
        for op in self.ops:
            op.rename(old_name, new_name)

    def is_net(self) -> bool:
        return True

    def debug_string(self, indent: int = 0) -> str:
        lines = [super().debug_string(indent)]
        lines.extend(op.debug_string(indent + 4) for op in self.ops)
        return '\n'.join(lines)

    def _structure(self):
        return (self.type, self.attrs, self.ops)

    def __len__(self):
        return len(self.ops)

    def __iter__(self) -> Iterator[OperatorBase]:
        return iter(self.ops)


def _contains(root: OperatorBase, target: OperatorBase) -> bool:
    if root is target:
        return True
    if isinstance(root, NetOp):
        return any(_contains(op, target) for op in root.ops)
    if isinstance(root, RecurrentOp) and root.step_net is not None:
        return _contains(root.step_net, target)
    return False


class RecurrentOp(OperatorBase):
    """ An operator that applies its step network once per time step.

        The step network is owned by the operator. It may contain operators of
        the same types as the enclosing graph, but never the recurrent operator
        itself.
    """

    def __init__(self,
                 type: str = "recurrent",
                 inputs=None,
                 outputs=None,
                 attrs=None,
                 step_net: Optional[NetOp] = None):
        super().__init__(type, inputs, outputs, attrs)
        self._step_net = None
        self.step_net = step_net

    @property
    def step_net(self) -> Optional[NetOp]:
        return self._step_net

    @step_net.setter
    def step_net(self, net: Optional[NetOp]):
        if net is not None and _contains(net, self):
            # Avoid import loop
            from gradgraph.autodiff.base_abc import InconsistentGraphError
            raise InconsistentGraphError(f"Step network of {self.type} operator may not contain the operator itself")
        self._step_net = net

    def debug_string(self, indent: int = 0) -> str:
        text = super().debug_string(indent)
        if self.step_net is not None:
            text += '\n' + self.step_net.debug_string(indent + 4)
        return text

    def _structure(self):
        return super()._structure() + (self.step_net, )


def create_op(type: str,
              inputs: Dict[str, Sequence[str]],
              outputs: Dict[str, Sequence[str]],
              attrs: Optional[Dict[str, Any]] = None) -> Operator:
    """ Creates an atomic operator. Argument lists are copied. """
    return Operator(type, inputs, outputs, copy.deepcopy(attrs))


def nop() -> NetOp:
    """ Creates an empty network standing in for a gradient that needs no computation. """
    return NetOp(type=NOP_TYPE)
