# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
""" Plug-in registries. The backward pass looks up gradient operator makers in the registry of
    :class:`~gradgraph.autodiff.base_abc.GradientOpMaker`, and user code extends it by subclassing. """

import contextlib
from typing import Dict, Type


def make_registry(cls: Type):
    """
    Class decorator that gives ``cls`` its own table of extensions.

    Adds ``cls.register(subclass, **kwargs)`` and ``cls.unregister(subclass)``
    to edit the table, and ``cls.extensions()``, which maps every extension
    to the keyword arguments it was registered with. Lookups walk the table
    in registration order, so earlier extensions win ties.
    """
    table: Dict[Type, Dict] = {}

    def register(subclass: Type, **kwargs):
        table[subclass] = kwargs

    def unregister(subclass: Type):
        del table[subclass]

    cls._registry_ = table
    cls.register = register
    cls.unregister = unregister
    cls.extensions = lambda: dict(table)

    return cls


def autoregister(cls: Type, **kwargs):
    """ Adds ``cls`` to the table of each direct base created with ``make_registry``.

        :raise TypeError: if no direct base of ``cls`` has a registry.
    """
    registries = [base for base in cls.__bases__ if hasattr(base, '_registry_') and hasattr(base, 'register')]
    if not registries:
        raise TypeError(f'Class {cls.__name__} does not extend a registry class')
    for base in registries:
        base.register(cls, **kwargs)
    return cls


def autoregister_params(**params):
    """
    Registers the decorated class with ``params`` as its registration
    arguments. For a gradient operator maker these say which forward
    operator types it handles::

        @autoregister_params(op_type="my_op", name="my_op_grad")
        class MyOpGrad(GradientOpMaker):
            ...
    """
    return lambda cls: autoregister(cls, **params)


@contextlib.contextmanager
def registered(base: Type, subclass: Type, **kwargs):
    """ Registers ``subclass`` with the registry of ``base`` for the duration
        of the context, restoring any previous registration of the same
        subclass afterwards.

        :param base: A class decorated with ``make_registry``.
        :param subclass: The extension to register.
        :param kwargs: Registration arguments.
    """
    previous = base.extensions().get(subclass)
    base.register(subclass, **kwargs)
    try:
        yield subclass
    finally:
        base.unregister(subclass)
        if previous is not None:
            base.register(subclass, **previous)
