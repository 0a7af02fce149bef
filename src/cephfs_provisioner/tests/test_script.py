import os
from unittest import TestCase, mock

from cephfs_provisioner.exception import ConfigurationError
from cephfs_provisioner.scripts.cephfs_provisioner import main
from cephfs_provisioner.tests.testcase import TestCaseBase


class ScriptTestCase(TestCaseBase, TestCase):

    CONFIG = """
        configurationVersion: '1'
        defaultGateway: gateway-1
        gateways:
          - name: gateway-1
            module: file
            configuration:
              monitors:
                - 10.0.0.1:6789
              adminSecretName: ceph-secret-admin
              mountPoint: {testpath}/mnt
        """

    def _main(self, *args) -> int:
        with mock.patch('sys.argv', ['cephfs-provisioner'] + list(args)):
            with self.assertRaises(SystemExit) as context:
                main()
        return context.exception.code

    def test_version(self):
        self.assertEqual(0, self._main('--version'))

    def test_config_file_not_found(self):
        self.assertEqual(os.EX_USAGE, self._main('-c', os.path.join(self.testpath.path, 'missing.yaml')))

    def test_invalid_config_file(self):
        config_file = os.path.join(self.testpath.path, 'config.yaml')
        with open(config_file, 'w') as f:
            f.write(self.CONFIG.format(testpath=self.testpath.path).replace("'1'", "'2'"))
        with mock.patch('sys.argv', ['cephfs-provisioner', '-c', config_file]):
            self.assertRaises(ConfigurationError, main)

    def test_run_exit_codes(self):
        config_file = os.path.join(self.testpath.path, 'config.yaml')
        with open(config_file, 'w') as f:
            f.write(self.CONFIG.format(testpath=self.testpath.path))

        with mock.patch('cephfs_provisioner.scripts.cephfs_provisioner.run') as run:
            self.assertEqual(os.EX_OK, self._main('-c', config_file, '--no-color'))
            run.assert_called_once()

            run.side_effect = KeyboardInterrupt()
            self.assertEqual(os.EX_OK, self._main('-c', config_file, '--no-color'))

            run.side_effect = ConfigurationError('Gateway gateway-2 is undefined.')
            self.assertEqual(os.EX_CONFIG, self._main('-c', config_file, '--no-color'))

            run.side_effect = OSError('Connection refused')
            self.assertEqual(os.EX_IOERR, self._main('-c', config_file, '--no-color'))
