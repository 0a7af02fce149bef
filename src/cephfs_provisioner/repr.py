# This is in large parts based on https://github.com/alexprengere/reprmixin/blob/master/reprmixin.py
# License: Apache-2.0
# Copyright (c) 2015-2017 Alex Prengère
from inspect import getmro
from reprlib import Repr as _Repr
from typing import Set, Any, Iterator, Tuple

_PACKAGE_PREFIX = __name__.split('.')[0] + '.'

HIDDEN = '<hidden>'


def _is_own_object(obj: Any) -> bool:
    module = getattr(obj, '__module__', None)
    # Named tuples render themselves
    return isinstance(module, str) and module.startswith(_PACKAGE_PREFIX) and not isinstance(obj, (type, tuple))


class Repr(_Repr):
    """Renders objects from this package with their attributes, recursing up to maxlevel.

    Attributes named in a class's _repr_hidden are replaced by a placeholder. This keeps API clients holding
    credentials and native filesystem handles out of log messages.
    """

    def repr1(self, obj, level: int) -> str:
        if level <= 0:
            return '<...>'
        if _is_own_object(obj):
            return self.repr_object(obj, level)
        return super().repr1(obj, level)

    def repr_object(self, obj, level: int) -> str:
        hidden = getattr(obj, '_repr_hidden', ())
        attributes = []
        for attr in self._find_attrs(obj):
            if attr.startswith('__'):
                continue
            value = HIDDEN if attr in hidden else self.repr1(getattr(obj, attr), level - 1)
            attributes.append('{}={}'.format(attr, value))
        return '{}({})'.format(obj.__class__.__name__, ', '.join(attributes))

    @staticmethod
    def _find_attrs(obj) -> Iterator[str]:
        visited: Set[str] = set()

        if hasattr(obj, '__dict__'):
            for attr in sorted(obj.__dict__):
                visited.add(attr)
                yield attr

        for cls in reversed(getmro(obj.__class__)):
            for attr in getattr(cls, '__slots__', ()):
                if attr not in visited and hasattr(obj, attr):
                    visited.add(attr)
                    yield attr


_shared_repr = Repr()


class ReprMixIn:

    # Attributes not to be rendered by repr()
    _repr_hidden: Tuple[str, ...] = ()

    def __repr__(self) -> str:
        return _shared_repr.repr(self)
