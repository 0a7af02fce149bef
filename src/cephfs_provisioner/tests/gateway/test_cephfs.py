import errno
import os
import unittest
from unittest import TestCase, mock

from . import GatewayTestCase

try:
    import cephfs
except ImportError:
    cephfs = None

TEST_MONITORS = os.environ.get('CEPHFS_TEST_MONITORS', '')


@unittest.skipIf(cephfs is None or not TEST_MONITORS,
                 'CEPHFS_TEST_MONITORS is not set or the cephfs module is not available')
class GatewayTestCephFS(GatewayTestCase, TestCase):
    CONFIG = """
        configurationVersion: '1'
        defaultGateway: gateway-1

        gateways:
          - name: gateway-1
            module: cephfs
            configuration:
              monitors: [""" + ', '.join("'{}'".format(monitor) for monitor in TEST_MONITORS.split(',')) + """]
              adminSecretName: ceph-secret-admin
              adminSecretNamespace: kube-system
        """

    def test_properties(self):
        self.assertEqual(tuple(TEST_MONITORS.split(',')), self.gateway.monitors)
        self.assertEqual('admin', self.gateway.admin_id)
        self.assertEqual('ceph-secret-admin', self.gateway.secret_ref.name)
        self.assertEqual('/volumes/kubernetes', self.gateway.root_path)

    def test_remove_recursive(self):
        path = self._path()
        self.gateway.create_namespace(path)
        fs = self.gateway._fs
        fs.mkdirs(path + '/a/b', 0o755)
        fd = fs.open(path + '/a/b/data', 'w', 0o644)
        fs.write(fd, b'data', 0)
        fs.close(fd)

        self.gateway.remove_namespace(path)
        self.assertFalse(self.gateway.namespace_exists(path))

    def test_remove_check_failure_is_os_error(self):
        path = self._path()
        fs = mock.Mock()
        # Present at first, then the removal races with something else and checking again fails
        fs.stat.side_effect = [None, cephfs.Error('Connection to the MDS lost')]
        fs.rmdir.side_effect = cephfs.ObjectNotFound(errno.ENOENT, 'No such file or directory')
        with mock.patch.object(self.gateway, '_fs', fs):
            with self.assertRaises(OSError) as context:
                self.gateway.remove_namespace(path, recursive=False)
        self.assertNotIsInstance(context.exception, FileNotFoundError)

    def test_repr_hides_handle(self):
        self.assertIn('_fs=<hidden>', repr(self.gateway))
