from cephfs_provisioner.exception import ValidationError, InternalError
from cephfs_provisioner.tests.testcase import GatewayTestCaseBase


class GatewayTestCase(GatewayTestCaseBase):

    def _path(self, name: str = None) -> str:
        return self.gateway.namespace_path(name if name is not None else 'pvc-' + self.random_string(16).lower())

    def test_create_remove(self):
        path = self._path()
        self.assertFalse(self.gateway.namespace_exists(path))
        self.gateway.create_namespace(path)
        self.assertTrue(self.gateway.namespace_exists(path))
        self.gateway.remove_namespace(path)
        self.assertFalse(self.gateway.namespace_exists(path))

    def test_create_existing(self):
        path = self._path()
        self.gateway.create_namespace(path)
        try:
            self.assertRaises(FileExistsError, lambda: self.gateway.create_namespace(path))
        finally:
            self.gateway.remove_namespace(path)

    def test_remove_absent(self):
        self.assertRaises(FileNotFoundError, lambda: self.gateway.remove_namespace(self._path()))

    def test_remove_twice(self):
        path = self._path()
        self.gateway.create_namespace(path)
        self.gateway.remove_namespace(path)
        self.assertRaises(FileNotFoundError, lambda: self.gateway.remove_namespace(path))

    def test_namespace_path(self):
        self.assertEqual('/volumes/kubernetes/pvc-abc123', self.gateway.namespace_path('pvc-abc123'))
        for name in ['', '.', '..', 'a/b', '/', 'a\0b', None]:
            self.assertRaises(ValidationError, lambda: self.gateway.namespace_path(name))

    def test_path_outside_root(self):
        for path in ['/volumes/pvc-1', '/volumes/kubernetes', '/volumes/kubernetes/a/b', '/volumes/kubernetes/../pvc-1']:
            self.assertRaises(InternalError, lambda: self.gateway.create_namespace(path))
            self.assertRaises(InternalError, lambda: self.gateway.remove_namespace(path))

    def test_properties(self):
        self.assertEqual(('10.0.0.1:6789', '10.0.0.2:6789'), self.gateway.monitors)
        self.assertEqual('admin', self.gateway.admin_id)
        self.assertEqual('ceph-secret-admin', self.gateway.secret_ref.name)
        self.assertEqual('kube-system', self.gateway.secret_ref.namespace)
        self.assertEqual('/volumes/kubernetes', self.gateway.root_path)

    def test_repr(self):
        representation = repr(self.gateway)
        self.assertTrue(representation.startswith('Gateway('))
        self.assertIn("_name='gateway-1'", representation)
        self.assertIn("_root_path='/volumes/kubernetes'", representation)
