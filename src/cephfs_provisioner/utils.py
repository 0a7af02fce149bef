#!/usr/bin/env python
# -*- encoding: utf-8 -*-
from typing import Any, Dict, Sequence

import setproctitle


def notify(process_name: str, msg: str = '') -> None:
    """ This method can receive notifications and append them in '[]' to the
    process name seen in ps, top, ...
    """
    if msg:
        new_msg = '{} [{}]'.format(process_name, msg.replace('\n', ' '))
    else:
        new_msg = process_name

    if setproctitle.getproctitle() != new_msg:
        setproctitle.setproctitle(new_msg)


# This works with dictionary keys and object attributes and a mixture of both.
def keys_exist(obj: Dict[str, Any], keys: Sequence[str]) -> bool:
    split_keys = [key.split('.') for key in keys]

    KeyDoesNotExist = object()
    for split_key in split_keys:
        position = obj
        for component in split_key:
            try:
                position = position.get(component, KeyDoesNotExist)
            except AttributeError:
                # We get here if the get() method is not supported.
                try:
                    position = getattr(position, component, KeyDoesNotExist)
                except AttributeError:
                    # We get here if the getattr() method is not supported.
                    return False
            if position is KeyDoesNotExist:
                return False

    return True


_KeyGetNoDefault = object()


def key_get(obj: Dict[str, Any], key: str, default: Any = _KeyGetNoDefault) -> Any:
    split_key = key.split('.')

    KeyDoesNotExist = object()
    position = obj
    for component in split_key:
        try:
            position = position.get(component, KeyDoesNotExist)
        except AttributeError:
            # We get here if the get() method is not supported.
            try:
                position = getattr(position, component, KeyDoesNotExist)
            except AttributeError:
                # We get here if the getattr() method is not supported.
                if default is not _KeyGetNoDefault:
                    return default
                else:
                    raise AttributeError(f'{key} does not exist.')
        if position is KeyDoesNotExist:
            if default is not _KeyGetNoDefault:
                return default
            else:
                raise AttributeError(f'{key} does not exist.')

    return position
