# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
import pytest

from gradgraph.autodiff.base_abc import InconsistentGraphError
from gradgraph.autodiff.duplicates import (collect_outputs, insert_accumulations, repeated_outputs, resolve_duplicate_outputs,
                                           split_repeated_outputs)
from gradgraph.graph.naming import EMPTY_VAR_NAME
from gradgraph.graph.operators import NetOp, create_op


def _writer(type, *names):
    return create_op(type, {"Out@GRAD": ["g@GRAD"]}, {"X@GRAD": list(names)})


def _index(ops):
    index = {}
    for position, op in enumerate(ops):
        collect_outputs(index, op, position)
    return index


def test_collect_outputs():
    ops = [_writer("a", "h@GRAD", "h@GRAD"), NetOp(ops=[_writer("b", "h@GRAD")]), _writer("c", "k@GRAD")]
    assert _index(ops) == {"h@GRAD": [0, 1], "k@GRAD": [2]}


def test_rename_and_accumulate():
    ops = [_writer("a", "h@GRAD"), _writer("b", "k@GRAD"), _writer("c", "h@GRAD"), _writer("d", "x@GRAD")]
    insertions = resolve_duplicate_outputs(_index(ops), ops, 7, "sum")

    assert ops[0].outputs == {"X@GRAD": ["h@GRAD@RENAME@7@0"]}
    assert ops[2].outputs == {"X@GRAD": ["h@GRAD@RENAME@7@1"]}
    assert ops[1].outputs == {"X@GRAD": ["k@GRAD"]}

    assert len(insertions) == 1
    position, acc = insertions[0]
    assert position == 2
    assert acc.type == "sum"
    assert acc.inputs == {"X": ["h@GRAD@RENAME@7@0", "h@GRAD@RENAME@7@1"]}
    assert acc.outputs == {"Out": ["h@GRAD"]}

    insert_accumulations(ops, insertions)
    assert [op.type for op in ops] == ["a", "b", "c", "sum", "d"]


def test_insertions_keep_positions():
    ops = [
        _writer("a", "h@GRAD"),
        _writer("b", "k@GRAD"),
        _writer("c", "h@GRAD"),
        _writer("d", "k@GRAD"),
        _writer("e", "x@GRAD"),
    ]
    insertions = resolve_duplicate_outputs(_index(ops), ops, 0, "add")
    assert [position for position, _ in insertions] == [3, 2]

    insert_accumulations(ops, insertions)
    assert [op.type for op in ops] == ["a", "b", "c", "add", "d", "add", "e"]
    assert ops[3].outputs == {"Out": ["h@GRAD"]}
    assert ops[5].outputs == {"Out": ["k@GRAD"]}


def test_discards_are_not_duplicates():
    ops = [_writer("a", EMPTY_VAR_NAME), _writer("b", EMPTY_VAR_NAME)]
    assert resolve_duplicate_outputs(_index(ops), ops, 0, "sum") == []
    assert ops[1].outputs == {"X@GRAD": [EMPTY_VAR_NAME]}


def test_rename_inside_network():
    inner = NetOp(ops=[_writer("b", "h@GRAD"), create_op("mean_grad", {"Out@GRAD": ["h@GRAD"]}, {"X@GRAD": ["m"]})])
    ops = [_writer("a", "h@GRAD"), inner]
    insertions = resolve_duplicate_outputs(_index(ops), ops, 2, "sum")

    # Every occurrence inside the network is renamed
    assert inner.ops[0].outputs == {"X@GRAD": ["h@GRAD@RENAME@2@1"]}
    assert inner.ops[1].inputs == {"Out@GRAD": ["h@GRAD@RENAME@2@1"]}
    assert insertions[0][0] == 1


def test_stale_index():
    ops = [_writer("a", "h@GRAD"), _writer("b", "k@GRAD")]
    with pytest.raises(InconsistentGraphError):
        resolve_duplicate_outputs({"h@GRAD": [0, 1]}, ops, 0, "sum")


def test_repeated_slots_get_own_aliases():
    op = create_op("mul_grad", {"Out@GRAD": ["y@GRAD"]}, {"X@GRAD": ["x@GRAD"], "Y@GRAD": ["x@GRAD"]})
    assert repeated_outputs(op) == ["x@GRAD"]

    accumulations = split_repeated_outputs(op, 3, "sum")
    assert op.outputs == {"X@GRAD": ["x@GRAD@RENAME@3@0"], "Y@GRAD": ["x@GRAD@RENAME@3@1"]}
    assert op.inputs == {"Out@GRAD": ["y@GRAD"]}
    assert len(accumulations) == 1
    assert accumulations[0].inputs == {"X": ["x@GRAD@RENAME@3@0", "x@GRAD@RENAME@3@1"]}
    assert accumulations[0].outputs == {"Out": ["x@GRAD"]}


def test_repeated_discards_are_kept():
    op = create_op("mul_grad", {}, {"X@GRAD": [EMPTY_VAR_NAME], "Y@GRAD": [EMPTY_VAR_NAME]})
    assert repeated_outputs(op) == []
    assert split_repeated_outputs(op, 0, "sum") == []


if __name__ == '__main__':
    test_collect_outputs()
    test_rename_and_accumulate()
    test_insertions_keep_positions()
    test_discards_are_not_duplicates()
    test_rename_inside_network()
    test_stale_index()
    test_repeated_slots_get_own_aliases()
    test_repeated_discards_are_kept()
