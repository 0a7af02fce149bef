from unittest import mock

import pytest

from cephfs_provisioner.utils import keys_exist, key_get, notify


class Holder:

    def __init__(self, value):
        self.attr = value


CLAIM = {
    'metadata': {
        'namespace': 'default',
        'name': 'data',
        'annotations': None,
    },
    'spec': {
        'resources': {
            'requests': {
                'storage': '5Gi'
            }
        },
        'holder': Holder({'a': 7}),
    },
}


def test_keys_exist() -> None:
    assert keys_exist(CLAIM, ['metadata'])
    assert not keys_exist(CLAIM, ['status'])

    assert keys_exist(CLAIM, ['metadata.name', 'metadata.namespace'])
    assert not keys_exist(CLAIM, ['metadata.name', 'metadata.uid'])
    assert not keys_exist(CLAIM, ['metadata.name.first'])

    assert keys_exist(CLAIM, ['spec.resources.requests.storage'])
    assert not keys_exist(CLAIM, ['spec.resources.limits.storage'])

    # A key with a value of None exists
    assert keys_exist(CLAIM, ['metadata.annotations'])

    assert keys_exist(CLAIM, ['spec.holder.attr.a'])
    assert not keys_exist(CLAIM, ['spec.holder.attr2.a'])


def test_key_get() -> None:
    assert key_get(CLAIM, 'spec.resources.requests.storage') == '5Gi'
    assert key_get(CLAIM, 'spec.holder.attr.a') == 7
    assert key_get(CLAIM, 'metadata.annotations') is None

    with pytest.raises(AttributeError):
        key_get(CLAIM, 'spec.volumeName')
    with pytest.raises(AttributeError):
        key_get(CLAIM, 'metadata.annotations.something')

    assert key_get(CLAIM, 'spec.volumeName', None) is None
    assert key_get(CLAIM, 'metadata.annotations.something', 'test') == 'test'


def test_notify() -> None:
    with mock.patch('setproctitle.getproctitle', return_value='cephfs-provisioner'), \
            mock.patch('setproctitle.setproctitle') as setproctitle:
        notify('cephfs-provisioner')
        setproctitle.assert_not_called()

        notify('cephfs-provisioner', 'Resyncing\nclaims')
        setproctitle.assert_called_once_with('cephfs-provisioner [Resyncing claims]')
