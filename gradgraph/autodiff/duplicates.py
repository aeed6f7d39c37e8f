# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
Resolution of gradient variables written by more than one gradient operator.

Every writer of a duplicated name is renamed to a unique alias, and an accumulation operator summing the aliases into
the original name is inserted right after the last writer.
"""
import collections
import logging
from typing import Dict, List, MutableSequence, Tuple

from gradgraph.autodiff.base_abc import InconsistentGraphError
from gradgraph.graph.naming import EMPTY_VAR_NAME, rename_alias
from gradgraph.graph.operators import OperatorBase, create_op

log = logging.getLogger(__name__)

#: Mapping from variable name to the positions of the operators writing it, in production order.
DuplicateIndex = Dict[str, List[int]]

#: An operator to insert after the operator at the given position.
Insertion = Tuple[int, OperatorBase]


def collect_outputs(index: DuplicateIndex, op: OperatorBase, position: int):
    """ Records every output variable of ``op`` as written at ``position``. """
    for name in op.output_vars():
        positions = index.setdefault(name, [])
        if not positions or positions[-1] != position:
            positions.append(position)


def resolve_duplicate_outputs(index: DuplicateIndex, ops: MutableSequence[OperatorBase], scope_id: int,
                              accumulation_type: str) -> List[Insertion]:
    """ Renames the writers of every duplicated variable and creates the accumulation operators.

        :param index: Writers of each variable, indexing into ``ops``.
        :param ops: The operator sequence. Writers are renamed in place.
        :param scope_id: Identifier of the composite expansion, used to keep
                         aliases unique across nested expansions.
        :param accumulation_type: Operator type of the accumulation operators.
        :return: Pairs of (position of the last writer, accumulation operator),
                 sorted by descending position.
    """
    insertions: List[Insertion] = []
    for name, positions in index.items():
        # Multiple discards are not a conflict
        if name == EMPTY_VAR_NAME or len(positions) < 2:
            continue

        aliases = []
        for i, position in enumerate(positions):
            if name not in ops[position].output_vars():
                raise InconsistentGraphError(f"Operator {ops[position].type} at position {position} is indexed as "
                                             f"writing {name}, but does not")
            alias = rename_alias(name, scope_id, i)
            ops[position].rename(name, alias)
            aliases.append(alias)

        log.debug(f"{name} is written by {len(positions)} operators, accumulating with {accumulation_type}")
        insertions.append((positions[-1], create_op(accumulation_type, {"X": aliases}, {"Out": [name]})))

    # Later positions first, so that pending insertions keep their positions
    insertions.sort(key=lambda ins: ins[0], reverse=True)
    return insertions


def repeated_outputs(op: OperatorBase) -> List[str]:
    """ Returns the variables that ``op`` writes in more than one output slot. """
    counts = collections.Counter(name for name in op.output_vars() if name != EMPTY_VAR_NAME)
    return [name for name, count in counts.items() if count > 1]


def split_repeated_outputs(op: OperatorBase, scope_id: int, accumulation_type: str) -> List[OperatorBase]:
    """ Gives every slot of an atomic operator that repeats an output variable its own alias.

        :param op: The operator. Its output slots are renamed in place, its inputs are left as is.
        :param scope_id: Identifier used to keep the aliases unique.
        :param accumulation_type: Operator type of the accumulation operators.
        :return: The accumulation operators summing the aliases back into each variable, to be run after ``op``.
    """
    accumulations = []
    for name in repeated_outputs(op):
        aliases = []
        for var_names in op.outputs.values():
            for i, var_name in enumerate(var_names):
                if var_name == name:
                    alias = rename_alias(name, scope_id, len(aliases))
                    var_names[i] = alias
                    aliases.append(alias)

        log.debug(f"{op.type} writes {name} in {len(aliases)} slots, accumulating with {accumulation_type}")
        accumulations.append(create_op(accumulation_type, {"X": aliases}, {"Out": [name]}))
    return accumulations


def insert_accumulations(ops: MutableSequence[OperatorBase], insertions: List[Insertion]):
    """ Inserts each operator right after its position. ``insertions`` must be
        sorted by descending position, as returned by ``resolve_duplicate_outputs``. """
    for position, op in insertions:
        ops.insert(position + 1, op)
